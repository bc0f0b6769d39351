"""Error taxonomy and service-error classification for the Jira REST client."""

from __future__ import annotations

import json
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

__all__ = [
    "JiraError",
    "ConstructionError",
    "ServiceError",
    "DecodeError",
    "TransportError",
    "classify",
    "classify_payload",
    "PARSE_ERRORS",
]

# Network failures are raised by requests itself and reach the caller unchanged
TransportError = requests.exceptions.RequestException

# json raises RecursionError rather than ValueError on absurdly nested input
PARSE_ERRORS = (ValueError, RecursionError)


class JiraError(Exception):
    """Base class for errors raised by this library."""


class ConstructionError(JiraError):
    """Raised when a request cannot be built, e.g. a malformed base URI."""


class DecodeError(JiraError):
    """Raised when a response body does not match the expected payload shape."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServiceError(JiraError):
    """
    A domain error reported by Jira in its error envelope:

        {"errorMessages": ["..."], "errors": {"summary": "..."}}

    Args:
        error_messages: Free-form messages not tied to a field.
        errors:         Mapping of field name to message.
        status_code:    HTTP status of the response, when known.
    """

    def __init__(
        self,
        error_messages: list[str] | None = None,
        errors: dict[str, str] | None = None,
        status_code: int | None = None,
    ) -> None:
        self.error_messages = list(error_messages or [])
        self.errors = dict(errors or {})
        self.status_code = status_code
        super().__init__(self._describe())

    def _describe(self) -> str:
        messages = "; ".join(self.error_messages)
        fields = "; ".join(f"{name}: {msg}" for name, msg in self.errors.items())
        return f"errorMessages: {messages} errors: {fields}"

    def is_empty(self) -> bool:
        return not self.error_messages and not self.errors

    @classmethod
    def from_payload(cls, payload: object, status_code: int | None = None) -> ServiceError | None:
        """Return a ServiceError if payload has the envelope's shape, else None.

        Only the shape is checked here; an envelope with no content is still
        returned and left to the caller to judge.
        """
        try:
            envelope = _ErrorEnvelope.model_validate(payload)
        except ValidationError:
            return None
        return cls(envelope.error_messages, envelope.errors, status_code)


class _ErrorEnvelope(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True, populate_by_name=True)

    error_messages: list[str] = Field(alias="errorMessages", default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _null_is_absent(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


def classify_payload(payload: Any, status_code: int | None = None) -> tuple[bool, ServiceError | None]:
    """Decide whether an already parsed body is a Jira error envelope.

    Returns (True, error) only when the payload has the envelope's shape and
    carries at least one message or field error.
    """
    error = ServiceError.from_payload(payload, status_code)
    if error is None or error.is_empty():
        return False, None
    return True, error


def classify(raw: bytes, status_code: int | None = None) -> tuple[bool, ServiceError | None]:
    """Decide whether a raw response body is a Jira error envelope.

    A body that is not JSON at all is reported as (False, None) and left for
    the success-path decoder, which will reject it.
    """
    try:
        payload = json.loads(raw)
    except PARSE_ERRORS:
        return False, None
    return classify_payload(payload, status_code)
