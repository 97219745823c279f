"""Error handling utilities."""

from typing import Optional


class LinknowError(Exception):
    """Base exception for Linknow backend."""
    pass


class ValidationFailed(LinknowError):
    """Field-level validation failure, surfaced inline next to the field."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class InvalidPermutation(LinknowError):
    """Reorder request does not match the current listing membership."""
    pass


class LimitExceeded(LinknowError):
    """Listing or image cap reached."""

    def __init__(self, resource: str, limit: int, message: Optional[str] = None):
        super().__init__(message or f"Max {limit} {resource} allowed.")
        self.resource = resource
        self.limit = limit


class NotFound(LinknowError):
    """Referenced entity does not exist (or no longer exists)."""
    pass


class Unauthenticated(LinknowError):
    """No valid session."""
    pass


class Forbidden(LinknowError):
    """Entity belongs to another profile."""
    pass


class PersistenceFailure(LinknowError):
    """Network or server error while committing a change."""
    pass


class SupabaseError(PersistenceFailure):
    """Supabase operation error."""
    pass


class StorageError(PersistenceFailure):
    """Object storage operation error."""
    pass


class AIGenerationError(LinknowError):
    """LLM text generation error."""
    pass
