"""Core modules for the order connector."""

from .logging import configure_logging, get_logger
from .models import (
    Document,
    Err,
    MessageType,
    NotFound,
    Ok,
    OrderResponse,
    Result,
)
from .folders import FolderSet, relocate

__all__ = [
    "configure_logging",
    "get_logger",
    "Document",
    "Err",
    "MessageType",
    "NotFound",
    "Ok",
    "OrderResponse",
    "Result",
    "FolderSet",
    "relocate",
]
