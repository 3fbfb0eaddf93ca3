"""Document store used by every engine handler.

Each entity type lives in its own Mongo collection and is reached through an
:class:`EntityStore`, which exposes the small contract the engines rely on:
``get``, ``list``, ``filter``, ``create`` and ``update``. Documents leave the
store with a string ``id`` in place of Mongo's ``_id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

from .database import get_database


def resolve_id(entity_id: str) -> Any:
    try:
        return ObjectId(entity_id)
    except (InvalidId, TypeError):
        return entity_id


def serialize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    document = dict(document)
    if "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document


class EntityStore:
    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get(self, entity_id: str) -> Dict[str, Any] | None:
        document = await self.collection.find_one({"_id": resolve_id(entity_id)})
        if document is None:
            return None
        return serialize_document(document)

    async def list(self, limit: int = 0, sort: str | None = None) -> List[Dict[str, Any]]:
        return await self.filter(limit=limit, sort=sort)

    async def filter(self, limit: int = 0, sort: str | None = None, **fields: Any) -> List[Dict[str, Any]]:
        cursor = self.collection.find(fields)
        if sort:
            # "-field" sorts descending.
            direction = -1 if sort.startswith("-") else 1
            cursor = cursor.sort(sort.lstrip("-"), direction)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize_document(doc) async for doc in cursor]

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        document = {key: value for key, value in data.items() if key != "id"}
        document["created_at"] = now
        document["updated_at"] = now
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        return serialize_document(document)

    async def update(self, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any] | None:
        changes = {key: value for key, value in data.items() if key not in {"id", "_id", "created_at"}}
        changes["updated_at"] = datetime.now(timezone.utc)
        object_id = resolve_id(entity_id)
        result = await self.collection.update_one({"_id": object_id}, {"$set": changes})
        if result.matched_count == 0:
            return None
        return await self.get(entity_id)


@dataclass
class Stores:
    patients: EntityStore
    donors: EntityStore
    matches: EntityStore
    notifications: EntityStore
    notification_rules: EntityStore
    audit_logs: EntityStore
    priority_weights: EntityStore
    users: EntityStore

    @classmethod
    def from_database(cls, database: AsyncIOMotorDatabase) -> "Stores":
        return cls(
            patients=EntityStore(database.get_collection("patients")),
            donors=EntityStore(database.get_collection("donor_organs")),
            matches=EntityStore(database.get_collection("matches")),
            notifications=EntityStore(database.get_collection("notifications")),
            notification_rules=EntityStore(database.get_collection("notification_rules")),
            audit_logs=EntityStore(database.get_collection("audit_logs")),
            priority_weights=EntityStore(database.get_collection("priority_weights")),
            users=EntityStore(database.get_collection("users")),
        )


def get_stores(database: AsyncIOMotorDatabase = Depends(get_database)) -> Stores:
    return Stores.from_database(database)
