"""Jira issue records and their JSON (de)serialization.

The records are strict, frozen pydantic models keyed by Jira's wire names.
``from_dict`` turns a parsed response into a record and raises DecodeError
when the payload does not fit; a missing or null wire field leaves the
default in place. ``to_dict`` is omit-empty: None, "" and empty containers
are not written.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from jira_rest_client.jira_errors import DecodeError

__all__ = [
    "IssueType",
    "User",
    "Project",
    "Priority",
    "IssueFields",
    "Issue",
    "IssueList",
    "adf_to_text",
    "text_to_adf",
]

# Jira renders timestamps like 2024-03-01T09:15:27.000+0000
JIRA_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"

# set while decoding a response, so shape rules for responses do not apply
# to records the caller builds for create_issue
_RESPONSE = "response"


def _from_response(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get(_RESPONSE))


def _describe(name: str, exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        path = ".".join(str(part) for part in (name, *err["loc"]))
        problems.append(f"{path}: {err['msg']}")
    return "; ".join(problems)


def _prune(data: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _prune(value)
        elif isinstance(value, list):
            value = [_prune(v) if isinstance(v, dict) else v for v in value]
        if isinstance(value, (str, list, dict)) and not value:
            continue
        out[key] = value
    return out


class _Record(BaseModel):
    """Shared decode/encode for the Jira records below."""

    model_config = ConfigDict(strict=True, frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _null_is_absent(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @classmethod
    def from_dict(cls, data: Any):
        """Decode a parsed Jira response.

        Raises:
            DecodeError: If the payload does not match this record's shape.
        """
        try:
            return cls.model_validate(data, context={_RESPONSE: True})
        except ValidationError as exc:
            raise DecodeError(_describe(cls.__name__, exc)) from exc

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form, leaving out every field that holds no value."""
        return _prune(self.model_dump(by_alias=True, exclude_none=True))


# ---------------------------------------------------------------------------
# Reference records
# ---------------------------------------------------------------------------

class IssueType(_Record):
    """Issue type such as Bug or Task."""

    self_url: str | None = Field(alias="self", default=None)
    id: str | None = None
    name: str | None = None
    description: str | None = None
    icon_url: str | None = Field(alias="iconUrl", default=None)
    subtask: bool | None = None


class User(_Record):
    self_url: str | None = Field(alias="self", default=None)
    name: str | None = None
    account_id: str | None = Field(alias="accountId", default=None)
    email_address: str | None = Field(alias="emailAddress", default=None)
    display_name: str | None = Field(alias="displayName", default=None)
    avatar_urls: dict[str, str] | None = Field(alias="avatarUrls", default=None)
    active: bool | None = None


class Project(_Record):
    self_url: str | None = Field(alias="self", default=None)
    id: str | None = None
    key: str | None = None
    name: str | None = None
    avatar_urls: dict[str, str] | None = Field(alias="avatarUrls", default=None)


class Priority(_Record):
    self_url: str | None = Field(alias="self", default=None)
    id: str | None = None
    name: str | None = None
    icon_url: str | None = Field(alias="iconUrl", default=None)


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------

class IssueFields(_Record):
    """The modeled subset of an issue's ``fields`` object.

    Unknown fields in the payload (custom fields, status, ...) are ignored.
    """

    issue_type: IssueType | None = Field(alias="issuetype", default=None)
    summary: str | None = None
    description: str | None = None
    reporter: User | None = None
    assignee: User | None = None
    project: Project | None = None
    creator: User | None = None
    created: str | None = None
    labels: list[str] = Field(default_factory=list)
    priority: Priority | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _flatten_adf(cls, value: Any) -> Any:
        # API v2 sends plain text, v3 sends an ADF document
        if isinstance(value, dict):
            return adf_to_text(value)
        return value

    @property
    def created_at(self) -> datetime | None:
        """Return ``created`` as an aware datetime, or None if unset.

        Raises:
            ValueError: If the timestamp is not in Jira's format.
        """
        if not self.created:
            return None
        return datetime.strptime(self.created, JIRA_TIMESTAMP_FORMAT)


class Issue(_Record):
    """
    A Jira issue. Values decoded from a response always carry ``id`` and
    ``key``; an Issue built by the caller for creation usually has neither.
    """

    id: str | None = None
    key: str | None = None
    self_url: str | None = Field(alias="self", default=None)
    expand: str | None = None
    fields: IssueFields = Field(default_factory=IssueFields)

    @model_validator(mode="after")
    def _has_identity(self, info: ValidationInfo) -> Issue:
        #a response without id/key is some other object, not an issue
        if _from_response(info):
            missing = [name for name in ("id", "key") if not getattr(self, name)]
            if missing:
                raise ValueError(f"missing required {', '.join(missing)}")
        return self

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        # Jira rejects a create request without a fields object
        out.setdefault("fields", {})
        return out


class IssueList(_Record):
    """One page of search results, in the order Jira returned them."""

    expand: str | None = None
    start_at: int = Field(alias="startAt", default=0)
    max_results: int = Field(alias="maxResults", default=0)
    total: int = 0
    issues: list[Issue] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _has_issues(cls, data: Any, info: ValidationInfo) -> Any:
        if _from_response(info) and isinstance(data, dict) and not isinstance(data.get("issues"), list):
            raise ValueError("missing issues array")
        return data


# ---------------------------------------------------------------------------
# ADF - the rich text format API v3 uses for descriptions
# ---------------------------------------------------------------------------

def adf_to_text(document: dict) -> str:
    """Flatten an ADF document to plain text, one line per text node.

    The walk is iterative, so nesting depth is bounded only by the JSON
    parser.

    Raises:
        ValueError: If a node is not an object, ``content`` is not a list,
            or a text node's ``text`` is not a string.
    """
    lines: list[str] = []
    pending: list[Any] = [document]
    while pending:
        node = pending.pop()
        if not isinstance(node, dict):
            raise ValueError(f"ADF node must be an object, got {type(node).__name__}")
        if node.get("type") == "text":
            text = node.get("text", "")
            if not isinstance(text, str):
                raise ValueError(f"ADF text must be a string, got {type(text).__name__}")
            if text:
                lines.append(text)
            continue
        content = node.get("content")
        if content is None:
            continue
        if not isinstance(content, list):
            raise ValueError(f"ADF content must be a list, got {type(content).__name__}")
        # reversed so the stack yields children in document order
        pending.extend(reversed(content))
    return "\n".join(lines)


def text_to_adf(text: str) -> dict:
    """Build an ADF document with one paragraph per line of ``text``."""
    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")
    paragraphs = []
    for line in text.split("\n"):
        # ADF forbids empty text nodes, an empty line is an empty paragraph
        content = [{"type": "text", "text": line}] if line else []
        paragraphs.append({"type": "paragraph", "content": content})
    return {"type": "doc", "version": 1, "content": paragraphs}
