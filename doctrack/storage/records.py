"""
Typed records returned by the stores.

Rows are parsed into these pydantic models at the store boundary. A row that
does not fit its model raises ``MalformedRowError`` rather than leaking a
pydantic ``ValidationError`` into business logic.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from doctrack.storage.errors import MalformedRowError
from doctrack.storage.pending import NONCE_MAX_BYTES

RecordT = TypeVar('RecordT', bound=BaseModel)


class PendingSession(BaseModel):
    """An in-flight OAuth handshake."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    nonce: bytes = Field(max_length=NONCE_MAX_BYTES)
    expiration: datetime


class SessionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: str
    expiration: datetime
    access_token: str


class UserInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str


class NewUser(UserInfo):
    """Identity reported by the identity provider after a successful login."""

    id: str


class InvitationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    permission: int
    creation: datetime


class InvalidatedSession(BaseModel):
    """The row removed by a logout, tagged with the table it came from."""

    model_config = ConfigDict(frozen=True)

    kind: Literal['pending', 'session']
    data: PendingSession | SessionRecord


class CategoryInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class DeletedCategory(BaseModel):
    """Result of a category deletion.

    ``deleted`` is False when documents still reference the category, in which
    case it was only deprecated.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    deleted: bool


class IssuedBatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    codes: list[UUID]


def parse_row(model: type[RecordT], row: Mapping[str, Any] | None) -> RecordT:
    """Validate a single result row against a record type.

    Args:
        model: The record type to build
        row: A result mapping, typically from ``Result.mappings()``

    Returns:
        The parsed record

    Raises:
        MalformedRowError: If the row is missing or does not fit the model
    """
    if row is None:
        raise MalformedRowError(f'Expected a {model.__name__} row, got nothing')
    try:
        return model.model_validate(dict(row))
    except ValidationError as e:
        raise MalformedRowError(
            f'Malformed {model.__name__} row: {e.error_count()} error(s)'
        ) from e


def parse_rows(
    model: type[RecordT], rows: list[Mapping[str, Any]]
) -> list[RecordT]:
    return [parse_row(model, row) for row in rows]
