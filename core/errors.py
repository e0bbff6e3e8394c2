# core/errors.py
"""
Error taxonomy shared by the file service endpoints.

Each error carries the HTTP status it maps to and knows how to render itself as
the JSON body returned to the caller. Endpoints raise these; the exception
handlers registered on the FastAPI app turn them into responses.
"""
from typing import Any, Dict, Optional


class FileDropError(Exception):
    """Base class for errors that map to a structured JSON error response."""
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class ClientInputError(FileDropError):
    """A required field is missing or malformed."""
    status_code = 400


class PayloadTooLargeError(FileDropError):
    """Decoded inline payload exceeds the configured ceiling."""
    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(f"File too large: {size} bytes exceeds the limit of {limit} bytes")
        self.size = size
        self.limit = limit

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "size": self.size, "limit": self.limit}


class BackendConfigurationError(FileDropError):
    """Supabase credentials are not configured."""
    status_code = 500


class BackendOperationError(FileDropError):
    """Storage or database call was rejected by the provider."""
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}
