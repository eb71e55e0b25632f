"""Custom exception hierarchy for the GiftBudget package."""

from __future__ import annotations


class GiftBudgetError(Exception):
    """Base class for all GiftBudget specific errors."""

    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(GiftBudgetError):
    """Raised when administrator or form input is rejected."""


class MissingFieldError(ValidationError):
    """Raised when a required field is empty."""

    default_message = "Please fill in all fields."


class DuplicateCodeError(ValidationError):
    """Raised when creating a passcode that already exists."""

    default_message = "That code already exists."


class InvalidFieldError(ValidationError):
    """Raised when a field is present but cannot be interpreted."""

    default_message = "Please check the values you entered."


class AdmissionError(GiftBudgetError):
    """Raised when a student cannot be admitted to a class session."""


class RegistryEmptyError(AdmissionError):
    default_message = "No passcodes set up yet. Please contact your teacher."


class InvalidCodeError(AdmissionError):
    default_message = "Invalid passcode. Please check with your teacher."


class OutOfWindowError(AdmissionError):
    """Raised when a passcode is used outside of its validity window."""

    def __init__(self, start_date: str, end_date: str) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"This passcode is only valid from {start_date} to {end_date}.")


class SessionFullError(AdmissionError):
    default_message = "This class session is full. Please contact your teacher."


class RegistryBusyError(AdmissionError):
    """Raised when concurrent updates keep conflicting with a registry write."""

    default_message = "The class list is busy right now. Please try again."


class AdminAuthError(GiftBudgetError):
    default_message = "Incorrect admin password."


class AdminLockedError(AdminAuthError):
    default_message = "Too many failed attempts. Please wait before trying again."


class StorageUnavailableError(GiftBudgetError):
    """Raised by storage backends when a read or write cannot be completed."""

    default_message = "Storage is unavailable."


__all__ = [
    "GiftBudgetError",
    "ValidationError",
    "MissingFieldError",
    "DuplicateCodeError",
    "InvalidFieldError",
    "AdmissionError",
    "RegistryEmptyError",
    "InvalidCodeError",
    "OutOfWindowError",
    "SessionFullError",
    "RegistryBusyError",
    "AdminAuthError",
    "AdminLockedError",
    "StorageUnavailableError",
]
