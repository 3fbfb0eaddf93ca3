from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Security, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pymongo.errors import PyMongoError

from ..database import settings
from ..models.user import AuthResponse, UserCreate, UserPublic, UserRole
from ..store import Stores, get_stores
from ..utils.logging import log_db_error
from ..utils.security import create_access_token, decode_token, hash_password, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserCreate, stores: Stores = Depends(get_stores)) -> UserPublic:
    try:
        existing = await stores.users.filter(email=payload.email, limit=1)
        if existing:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
        stored = await stores.users.create(
            {
                "email": payload.email,
                "name": payload.name,
                "password": hash_password(payload.password),
                "role": payload.role,
                "phone_number": payload.phone_number,
            }
        )
    except PyMongoError as exc:  # pragma: no cover - requires external service
        log_db_error("register_user", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Registration failed. Try again when database is available.",
        ) from exc
    return UserPublic(**stored)


@router.post("/login", response_model=AuthResponse)
async def login_user(
    form_data: OAuth2PasswordRequestForm = Depends(),
    stores: Stores = Depends(get_stores),
) -> AuthResponse:
    try:
        matches = await stores.users.filter(email=form_data.username, limit=1)
    except PyMongoError as exc:  # pragma: no cover
        log_db_error("login_user", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Login unavailable. Try again shortly.",
        ) from exc
    user = matches[0] if matches else None
    if not user or not verify_password(form_data.password, user.get("password", "")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    token = create_access_token(user["id"], user["role"])
    return AuthResponse(access_token=token, user=UserPublic(**user), message="Welcome back")


async def _ensure_demo_user(stores: Stores) -> UserPublic:
    matches = await stores.users.filter(email=settings.demo_user_email, limit=1)
    if matches:
        return UserPublic(**matches[0])
    demo = await stores.users.create(
        {
            "email": settings.demo_user_email,
            "name": settings.demo_user_name,
            "password": hash_password(settings.demo_user_password),
            "role": settings.demo_user_role,
        }
    )
    return UserPublic(**demo)


async def get_current_user(
    token: str | None = Security(oauth2_scheme),
    stores: Stores = Depends(get_stores),
) -> UserPublic:
    if not token:
        if settings.auto_authorize_demo:
            return await _ensure_demo_user(stores)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authorization token")

    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    user = await stores.users.get(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return UserPublic(**user)


def require_roles(*roles: UserRole):
    def dependency(user: UserPublic = Depends(get_current_user)) -> UserPublic:
        if roles and user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this action",
            )
        return user

    return dependency
