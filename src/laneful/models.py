"""Outbound email request models.

Models validate on construction, so an Email that exists is sendable. Direct
construction raises pydantic.ValidationError; Email.from_dict() converts that
into laneful.exceptions.ValidationError.
"""

from __future__ import annotations

import base64
import mimetypes
import re
import time
from pathlib import Path
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from laneful.exceptions import ValidationError

ADDRESS_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def _format_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"])
        msg = item["msg"].removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


class Address(BaseModel):
    """An email address with an optional display name."""

    model_config = ConfigDict(frozen=True)

    email: str
    name: str | None = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Email address cannot be empty")
        if not ADDRESS_PATTERN.fullmatch(value):
            raise ValueError(f"Invalid email address format: {value}")
        return value

    def __str__(self) -> str:
        if self.name and self.name.strip():
            return f"{self.name} <{self.email}>"
        return self.email


class Attachment(BaseModel):
    """A base64-encoded file attachment."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_name: str = Field(
        validation_alias=AliasChoices("file_name", "filename"),
        serialization_alias="file_name",
    )
    content_type: str
    content: str = Field(repr=False)

    @field_validator("file_name", "content_type", "content")
    @classmethod
    def _not_blank(cls, value: str, info: ValidationInfo) -> str:
        if not value or not value.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return value

    @classmethod
    def from_file(cls, path: str | Path) -> Attachment:
        """Build an attachment from a file on disk.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            file_name=path.name,
            content_type=content_type or "application/octet-stream",
            content=base64.b64encode(path.read_bytes()).decode("ascii"),
        )


class TrackingSettings(BaseModel):
    """Per-message tracking switches."""

    model_config = ConfigDict(frozen=True)

    opens: bool = False
    clicks: bool = False
    unsubscribes: bool = False


class Email(BaseModel):
    """A single email to be sent through the Laneful API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: Address = Field(alias="from")
    to: list[Address] = Field(default_factory=list)
    cc: list[Address] = Field(default_factory=list)
    bcc: list[Address] = Field(default_factory=list)
    subject: str | None = None
    text_content: str | None = None
    html_content: str | None = None
    template_id: str | None = None
    template_data: dict[str, Any] | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    headers: dict[str, str] | None = None
    reply_to: Address | None = None
    send_time: int | None = Field(
        default=None,
        description="Unix timestamp for scheduled delivery; must be in the future.",
    )
    webhook_data: dict[str, str] | None = None
    tag: str | None = None
    tracking: TrackingSettings | None = None

    @field_validator("from_", "reply_to", mode="before")
    @classmethod
    def _coerce_address(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"email": value}
        return value

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def _coerce_addresses(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [{"email": v} if isinstance(v, str) else v for v in value]
        return value

    @model_validator(mode="after")
    def _check_sendable(self) -> Email:
        if not (self.to or self.cc or self.bcc):
            raise ValueError("Email must have at least one recipient (to, cc, or bcc)")

        has_content = any(
            c is not None and c.strip() for c in (self.text_content, self.html_content)
        )
        has_template = self.template_id is not None and bool(self.template_id.strip())
        if not has_content and not has_template:
            raise ValueError("Email must have either content (text/HTML) or a template ID")

        if self.send_time is not None and self.send_time <= int(time.time()):
            raise ValueError("Send time must be in the future")
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Email:
        """Build an Email from its wire representation.

        Raises:
            ValidationError: If the data does not describe a sendable email.
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(_format_errors(e)) from e

    def to_payload(self) -> dict[str, Any]:
        """Wire representation, omitting unset and empty optional fields."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        for key in ("cc", "bcc", "attachments"):
            if not data.get(key):
                data.pop(key, None)
        return data
