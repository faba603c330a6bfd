"""
Inbound order dispatch.

Sends every order document found in the inbound folder to Jakamo and
moves it to the processed or failed folder depending on the outcome.
"""

import threading
from pathlib import Path

from jakamo_connector.classifiers import inspect
from jakamo_connector.config import get_settings
from jakamo_connector.core.exceptions import (
    ConnectorError,
    MissingIdentifierError,
    RelocationFailure,
    RemoteCallFailure,
)
from jakamo_connector.core.folders import FolderSet, relocate
from jakamo_connector.core.logging import bind_context, clear_context, get_logger
from jakamo_connector.core.models import Document, Err, MessageType, Ok, Result
from jakamo_connector.processors.base import BaseProcessor
from jakamo_connector.services.base import BasePurchaseOrderClient

log = get_logger(__name__)


class DispatchProcessor(BaseProcessor):
    """
    One pass over the inbound folder.

    Files are handled one at a time in listing order. Whatever goes wrong
    with one file ends with that file in the failed folder; the pass moves
    on to the next file.
    """

    def __init__(
        self,
        client: BasePurchaseOrderClient,
        folders: FolderSet | None = None,
        stop_event: threading.Event | None = None,
    ):
        self.client = client
        self.folders = folders or FolderSet.from_settings(get_settings())
        self.stop_event = stop_event or threading.Event()

    def list_inbound(self) -> list[Path]:
        """XML files directly inside the inbound folder."""
        return [path for path in self.folders.inbound.glob("*.xml") if path.is_file()]

    def process(self) -> dict:
        """
        Run one dispatch pass.

        Returns:
            Statistics dict with counts
        """
        stats = {"found": 0, "processed": 0, "failed": 0, "relocation_errors": 0}

        files = self.list_inbound()
        if not files:
            return stats

        stats["found"] = len(files)
        log.info("inbound_orders_found", count=len(files))

        for index, path in enumerate(files):
            if self.stop_event.is_set():
                log.info("dispatch_interrupted", remaining=len(files) - index)
                break

            bind_context(file=path.name)
            try:
                success = self.process_file(path)
                destination = self.folders.processed if success else self.folders.failed
                stats["processed" if success else "failed"] += 1
                if not self._relocate(path, destination):
                    stats["relocation_errors"] += 1
            finally:
                clear_context()

        log.info("dispatch_pass_complete", **stats)
        return stats

    def process_file(self, path: Path) -> bool:
        """
        Classify and send a single document.

        Returns:
            True when Jakamo accepted the document.
        """
        log.info("processing_order_file")
        try:
            document = inspect(path)
            log.info(
                "message_type_detected",
                message_type=document.message_type.value,
                order_id=document.order_id,
            )

            if document.message_type.requires_order_id and not document.order_id:
                raise MissingIdentifierError(
                    "Could not extract order ID from update/status message"
                )

            self.send(document)

        except ConnectorError as e:
            log.warning("order_failed", error_type=type(e).__name__, error=str(e))
            return False
        except Exception:
            log.exception("order_processing_error")
            return False

        log.info("order_processed")
        return True

    def send(self, document: Document) -> None:
        """
        Send a document with the operation matching its message type.

        Raises:
            RemoteCallFailure: Jakamo rejected the document.
        """
        operation = document.message_type
        with document.path.open("rb") as stream:
            if operation is MessageType.NEW_ORDER:
                result = self.client.send_order(stream)
            elif operation is MessageType.ORDER_UPDATE:
                result = self.client.update_order(document.order_id, stream)
            elif operation is MessageType.STATUS_MESSAGE:
                result = self.client.send_status_message(document.order_id, stream)
            else:
                raise ValueError(f"Unknown message type: {operation}")

        if isinstance(result, Ok):
            return
        raise RemoteCallFailure(operation.value, _errors(result))

    def _relocate(self, path: Path, destination: Path) -> bool:
        try:
            final_path = relocate(path, destination)
        except RelocationFailure as e:
            log.error("relocation_failed", destination=str(destination), error=str(e))
            return False
        except Exception:
            log.exception("relocation_error", destination=str(destination))
            return False

        log.info("order_file_moved", destination=str(final_path))
        return True


def _errors(result: Result) -> list[str]:
    if isinstance(result, Err):
        return result.errors
    return [f"Unexpected result: {type(result).__name__}"]
