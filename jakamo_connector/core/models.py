"""
Data models for order documents and remote API results.

Uses dataclasses for clean, typed data structures.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class MessageType(str, Enum):
    """Kind of inbound document, decided by its root element."""

    NEW_ORDER = "new_order"
    ORDER_UPDATE = "order_update"
    STATUS_MESSAGE = "status_message"

    @property
    def requires_order_id(self) -> bool:
        """Updates and status messages refer to an existing order."""
        return self is not MessageType.NEW_ORDER


# Root element local name -> message type
ROOT_ELEMENTS: dict[str, MessageType] = {
    "Order": MessageType.NEW_ORDER,
    "OrderChange": MessageType.ORDER_UPDATE,
    "StatusMessage": MessageType.STATUS_MESSAGE,
}


@dataclass
class Document:
    """An order document found in the inbound folder."""

    path: Path
    root_element: str
    message_type: MessageType
    order_id: str | None = None

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class OrderResponse:
    """Order response fetched from the remote queue."""

    order_number: str
    xml: bytes
    ack_uri: str | None = None

    @property
    def file_name(self) -> str:
        return f"{self.order_number}.xml"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful remote call."""

    value: T | None = None

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed remote call with human readable error messages."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return ", ".join(self.errors) or "unknown error"


@dataclass(frozen=True)
class NotFound:
    """Nothing to return; used when the response queue is empty."""

    @property
    def is_success(self) -> bool:
        return False


Result = Union[Ok[T], Err, NotFound]
