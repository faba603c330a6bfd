"""
Order document classifier.

The message type is decided only by the root element's local name;
namespaces are ignored.
"""

import xml.etree.ElementTree as ET
from pathlib import Path

from jakamo_connector.core.exceptions import ClassificationError
from jakamo_connector.core.logging import get_logger
from jakamo_connector.core.models import ROOT_ELEMENTS, Document, MessageType

log = get_logger(__name__)

ORDER_ID_ELEMENTS = {"ID", "OrderID"}


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _parse(path: Path) -> ET.Element:
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ClassificationError(f"{path.name} is not well-formed XML: {e}") from e
    except OSError as e:
        raise ClassificationError(f"Could not read {path.name}: {e}") from e


def _message_type(root: ET.Element) -> MessageType:
    name = local_name(root.tag)
    try:
        return ROOT_ELEMENTS[name]
    except KeyError:
        raise ClassificationError(f"Unknown root element: {name}") from None


def _find_order_id(root: ET.Element) -> str | None:
    # iter() walks in document order, root included
    for element in root.iter():
        if local_name(element.tag) in ORDER_ID_ELEMENTS:
            value = "".join(element.itertext()).strip()
            return value or None
    return None


def classify(path: Path) -> MessageType:
    """
    Classify an order document by its root element.

    Raises:
        ClassificationError: unknown root element, malformed or unreadable file.
    """
    path = Path(path)
    return _message_type(_parse(path))


def extract_order_id(path: Path) -> str | None:
    """Text of the first ID/OrderID element in document order, or None."""
    return _find_order_id(_parse(Path(path)))


def inspect(path: Path) -> Document:
    """
    Parse a document once and classify it.

    The order id is only looked up for message types that need one.

    Raises:
        ClassificationError: see classify().
    """
    path = Path(path)
    root = _parse(path)
    message_type = _message_type(root)
    order_id = _find_order_id(root) if message_type.requires_order_id else None

    log.debug(
        "document_classified",
        file=path.name,
        message_type=message_type.value,
        order_id=order_id,
    )
    return Document(
        path=path,
        root_element=local_name(root.tag),
        message_type=message_type,
        order_id=order_id,
    )
