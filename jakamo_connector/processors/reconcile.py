"""
Order response reconciliation.

Drains the Jakamo order-response queue into the responses folder. A
response is only acknowledged (removed from the queue) after it has been
written locally, so a local failure leaves it queued for the next pass.
"""

import re
import threading
import xml.etree.ElementTree as ET
from io import BytesIO
from pathlib import Path

from jakamo_connector.config import get_settings
from jakamo_connector.core.exceptions import AcknowledgmentFailure, PersistenceFailure
from jakamo_connector.core.folders import FolderSet
from jakamo_connector.core.logging import bind_context, clear_context, get_logger
from jakamo_connector.core.models import Err, NotFound, Ok, OrderResponse
from jakamo_connector.processors.base import BaseProcessor
from jakamo_connector.services.base import BasePurchaseOrderClient

log = get_logger(__name__)

_RESERVED_PREFIX = re.compile(r"ns\d+$")


class ReconciliationProcessor(BaseProcessor):
    """One drain pass over the remote order-response queue."""

    def __init__(
        self,
        client: BasePurchaseOrderClient,
        folders: FolderSet | None = None,
        stop_event: threading.Event | None = None,
    ):
        self.client = client
        self.folders = folders or FolderSet.from_settings(get_settings())
        self.stop_event = stop_event or threading.Event()

    def process(self) -> dict:
        """
        Fetch, save and acknowledge responses until the queue is empty.

        A failed fetch or a failed save ends the pass; a failed
        acknowledgment is logged and the drain carries on.

        Returns:
            Statistics dict with counts
        """
        stats = {"received": 0, "saved": 0, "acknowledged": 0, "ack_failures": 0, "errors": 0}

        while not self.stop_event.is_set():
            try:
                result = self.client.get_order_response()
            except Exception:
                log.exception("order_response_fetch_error")
                stats["errors"] += 1
                break

            if isinstance(result, NotFound):
                break
            if not isinstance(result, Ok):
                errors = result.errors if isinstance(result, Err) else []
                log.error("order_response_fetch_failed", errors=", ".join(errors))
                stats["errors"] += 1
                break

            response: OrderResponse = result.value
            stats["received"] += 1
            bind_context(order_number=response.order_number)
            try:
                try:
                    self.save(response)
                except PersistenceFailure as e:
                    log.error("order_response_save_failed", error=str(e))
                    stats["errors"] += 1
                    break
                stats["saved"] += 1

                if not response.ack_uri:
                    log.warning("order_response_without_ack_uri")
                    continue

                try:
                    self.acknowledge(response)
                except AcknowledgmentFailure as e:
                    log.warning("order_response_ack_failed", error=str(e))
                    stats["ack_failures"] += 1
                else:
                    stats["acknowledged"] += 1
            finally:
                clear_context()

        if stats["received"] or stats["errors"]:
            log.info("reconciliation_pass_complete", **stats)
        return stats

    def save(self, response: OrderResponse) -> Path:
        """
        Write a response as ``<order number>.xml``, replacing an earlier copy.

        Raises:
            PersistenceFailure: bad order number, unparsable payload or write error.
        """
        file_name = response.file_name
        if Path(file_name).name != file_name or file_name.startswith("."):
            raise PersistenceFailure(f"Unusable order number for a file name: {response.order_number!r}")

        try:
            tree = ET.ElementTree(_parse_payload(response.xml))
        except ET.ParseError as e:
            raise PersistenceFailure(f"Response payload is not well-formed XML: {e}") from e

        path = self.folders.responses / file_name
        temp_path = path.with_name(f".{file_name}.tmp")
        try:
            tree.write(temp_path, encoding="utf-8", xml_declaration=True)
            temp_path.replace(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise PersistenceFailure(f"Could not write {path}: {e}") from e

        log.info("order_response_saved", file=file_name)
        return path

    def acknowledge(self, response: OrderResponse) -> None:
        """
        Remove a saved response from the remote queue.

        Raises:
            AcknowledgmentFailure: the remote call failed or raised.
        """
        try:
            result = self.client.remove_order_response_from_queue(response.ack_uri)
        except Exception as e:
            raise AcknowledgmentFailure(str(e)) from e

        if not isinstance(result, Ok):
            errors = result.errors if isinstance(result, Err) else []
            raise AcknowledgmentFailure(", ".join(errors) or type(result).__name__)

        log.info("order_response_acknowledged")


def _parse_payload(payload: bytes) -> ET.Element:
    """Parse a payload, keeping its namespace prefixes for re-serialization."""
    for _, (prefix, uri) in ET.iterparse(BytesIO(payload), events=("start-ns",)):
        # ns0, ns1... are reserved for ElementTree's generated prefixes
        if prefix and not _RESERVED_PREFIX.match(prefix):
            ET.register_namespace(prefix, uri)
    return ET.fromstring(payload)
