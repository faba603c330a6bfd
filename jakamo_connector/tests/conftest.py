"""
Shared pytest fixtures for jakamo_connector tests.
"""

from pathlib import Path
from typing import BinaryIO

import pytest

from jakamo_connector.core.folders import FolderSet
from jakamo_connector.core.models import Err, NotFound, Ok, OrderResponse, Result
from jakamo_connector.services.base import BasePurchaseOrderClient

NEW_ORDER_XML = """<?xml version="1.0" encoding="utf-8"?>
<Order>
  <Header>
    <Buyer>ACME Oy</Buyer>
  </Header>
  <Lines>
    <Line><Item>BOLT-10</Item><Quantity>100</Quantity></Line>
  </Lines>
</Order>
"""

ORDER_CHANGE_XML = """<?xml version="1.0" encoding="utf-8"?>
<OrderChange>
  <Header>
    <OrderID>PO-1001</OrderID>
  </Header>
  <Lines>
    <Line><Item>BOLT-10</Item><Quantity>120</Quantity></Line>
  </Lines>
</OrderChange>
"""

STATUS_MESSAGE_XML = """<?xml version="1.0" encoding="utf-8"?>
<StatusMessage>
  <Order><ID>PO-2002</ID></Order>
  <Status>Delivered</Status>
</StatusMessage>
"""

ORDER_CHANGE_WITHOUT_ID_XML = """<?xml version="1.0" encoding="utf-8"?>
<OrderChange>
  <Header><Buyer>ACME Oy</Buyer></Header>
</OrderChange>
"""

UNKNOWN_ROOT_XML = """<?xml version="1.0" encoding="utf-8"?>
<Invoice><ID>INV-1</ID></Invoice>
"""


class FakePurchaseOrderClient(BasePurchaseOrderClient):
    """Scripted client recording every call."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.send_result: Result = Ok()
        self.responses: list[Result | Exception] = []
        self.ack_results: dict[str, Result | Exception] = {}
        # Bodies read from the streams passed to send calls
        self.bodies: list[bytes] = []

    def _record(self, name: str, *args, stream: BinaryIO | None = None):
        if stream is not None:
            self.bodies.append(stream.read())
        self.calls.append((name, *args))

    def send_order(self, stream):
        self._record("send_order", stream=stream)
        return self._send_result()

    def update_order(self, order_id, stream):
        self._record("update_order", order_id, stream=stream)
        return self._send_result()

    def send_status_message(self, order_id, stream):
        self._record("send_status_message", order_id, stream=stream)
        return self._send_result()

    def _send_result(self) -> Result:
        if isinstance(self.send_result, Exception):
            raise self.send_result
        return self.send_result

    def get_order_response(self):
        self._record("get_order_response")
        if not self.responses:
            return NotFound()
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def remove_order_response_from_queue(self, ack_uri):
        self._record("remove_order_response_from_queue", ack_uri)
        result = self.ack_results.get(ack_uri, Ok())
        if isinstance(result, Exception):
            raise result
        return result

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


def _order_response(order_number: str, ack_uri: str | None = None) -> Ok:
    """Ok result wrapping a small order response payload."""
    xml = (
        f"<OrderResponse><OrderNumber>{order_number}</OrderNumber>"
        f"<Status>Accepted</Status></OrderResponse>"
    ).encode()
    return Ok(OrderResponse(
        order_number=order_number,
        xml=xml,
        ack_uri=ack_uri if ack_uri is not None else f"https://api.example.com/queue/{order_number}",
    ))


@pytest.fixture
def folders(tmp_path: Path) -> FolderSet:
    """Folder set under a temporary directory, already created."""
    folder_set = FolderSet(
        inbound=tmp_path / "inbound",
        processed=tmp_path / "processed",
        failed=tmp_path / "failed",
        responses=tmp_path / "responses",
    )
    folder_set.ensure()
    return folder_set


@pytest.fixture
def client() -> FakePurchaseOrderClient:
    return FakePurchaseOrderClient()


@pytest.fixture
def write_inbound(folders):
    """Write a document into the inbound folder."""

    def _write(name: str, content: str) -> Path:
        path = folders.inbound / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_response():
    """Build Ok(OrderResponse) results for the fake queue."""
    return _order_response


@pytest.fixture
def samples() -> dict[str, str]:
    """Sample inbound documents by kind."""
    return {
        "order": NEW_ORDER_XML,
        "order_change": ORDER_CHANGE_XML,
        "status": STATUS_MESSAGE_XML,
        "order_change_without_id": ORDER_CHANGE_WITHOUT_ID_XML,
        "unknown_root": UNKNOWN_ROOT_XML,
    }


@pytest.fixture
def failing_result() -> Err:
    return Err(["Order PO-1001 not found", "Validation failed"])
