from __future__ import annotations


class TransTrackError(Exception):
    """Base class for errors the API maps onto a status code."""

    status_code = 500


class NotFoundError(TransTrackError):
    status_code = 404


class PatientNotFoundError(NotFoundError):
    def __init__(self, patient_id: str) -> None:
        super().__init__("Patient not found")
        self.patient_id = patient_id


class DonorNotFoundError(NotFoundError):
    def __init__(self, donor_organ_id: str) -> None:
        super().__init__("Donor organ not found")
        self.donor_organ_id = donor_organ_id


class ValidationError(TransTrackError):
    status_code = 400
