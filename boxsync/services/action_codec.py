"""
JSON codec for client file-action payloads.

Clients send one FileAction per message in this shape::

    {"Id": 0, "ClientId": 0, "IsCreate": true, "CreatedAt": "0001-01-01T00:00:00Z",
     "File": {"Id": 0, "UserId": 0, "Name": "client.go", "Hash": "f953d3...",
              "Size": 6622, "Modified": "2015-02-09T14:39:22-05:00",
              "Path": "./client.go", "CreatedAt": "0001-01-01T00:00:00Z"}}

Zero ids and the zero timestamp mean "not assigned yet".
Field types are not coerced: ``"Size": "6622"`` is rejected, while timestamps
are RFC 3339 strings.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import MalformedInput
from ..models.data_models import Client, File, FileAction

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class FilePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, strict=True)

    id: int = Field(0, alias='Id', ge=0)
    user_id: int = Field(0, alias='UserId', ge=0)
    name: str = Field('', alias='Name')
    hash: str = Field(alias='Hash', pattern=r'^[0-9a-fA-F]+$')
    size: int = Field(0, alias='Size', ge=0)
    modified: datetime = Field(ZERO_TIME, alias='Modified')
    path: str = Field(alias='Path', min_length=1)
    created_at: datetime = Field(ZERO_TIME, alias='CreatedAt')


class FileActionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, strict=True)

    id: int = Field(0, alias='Id', ge=0)
    client_id: int = Field(0, alias='ClientId', ge=0)
    is_create: bool = Field(alias='IsCreate')
    created_at: datetime = Field(ZERO_TIME, alias='CreatedAt')
    file: FilePayload = Field(alias='File')


def _optional_id(value: int) -> Optional[int]:
    return value or None


def _optional_time(value: datetime) -> Optional[datetime]:
    return None if value.year == 1 else value


def parse_file_action(payload: str, client: Optional[Client] = None) -> FileAction:
    """
    Decode one JSON payload into a FileAction.

    Args:
        payload: JSON text of a single file action
        client: Client that sent the payload; its id overrides the payload's

    Returns:
        The decoded FileAction

    Raises:
        MalformedInput: If the payload is not valid JSON or misses required fields
    """
    try:
        decoded = FileActionPayload.model_validate_json(payload)
    except ValidationError as e:
        raise MalformedInput(f"Error decoding file action: {e}") from e

    file = decoded.file
    client_id = client.id if client is not None else _optional_id(decoded.client_id)

    return FileAction(
        is_create=decoded.is_create,
        file=File(
            path=file.path,
            hash=file.hash.lower(),
            size=file.size,
            modified=file.modified,
            name=file.name,
            user_id=_optional_id(file.user_id),
            id=_optional_id(file.id),
            created_at=_optional_time(file.created_at)
        ),
        client_id=client_id,
        id=_optional_id(decoded.id),
        created_at=_optional_time(decoded.created_at)
    )


def parse_file_actions(payloads: Iterable[str], client: Optional[Client] = None) -> List[FileAction]:
    """Decode a batch of payloads, reporting the index of the first bad one."""
    actions = []
    for index, payload in enumerate(payloads):
        try:
            actions.append(parse_file_action(payload, client))
        except MalformedInput as e:
            raise MalformedInput(str(e), index=index) from e
    return actions


def dump_file_action(action: FileAction) -> str:
    """Encode a FileAction back into the client wire format."""
    file = action.file
    payload = FileActionPayload(
        id=action.id or 0,
        client_id=action.client_id or 0,
        is_create=action.is_create,
        created_at=action.created_at or ZERO_TIME,
        file=FilePayload(
            id=file.id or 0,
            user_id=file.user_id or 0,
            name=file.name,
            hash=file.hash,
            size=file.size,
            modified=file.modified,
            path=file.path,
            created_at=file.created_at or ZERO_TIME
        )
    )
    return payload.model_dump_json(by_alias=True)
