# invoicer/errors.py
from typing import Any, Dict, List, Optional


class InvoicerError(Exception):
    """Base error; status_code and message are what the API answers with."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailedError(InvoicerError):
    status_code = 400


class UnauthorizedError(InvoicerError):
    status_code = 401


class ForbiddenError(InvoicerError):
    status_code = 403


class NotFoundError(InvoicerError):
    status_code = 404


class ConflictError(InvoicerError):
    status_code = 409


def describe_validation_errors(errors) -> List[Dict[str, Any]]:
    """Flatten pydantic error dicts into {field, message} pairs."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return details
