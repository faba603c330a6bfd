"""Unit tests for the reconciliation (response drain) pass."""

import threading
import xml.etree.ElementTree as ET
from unittest.mock import patch

import pytest

from jakamo_connector.core.exceptions import AcknowledgmentFailure, PersistenceFailure
from jakamo_connector.core.models import Err, NotFound, Ok, OrderResponse
from jakamo_connector.processors.reconcile import ReconciliationProcessor


class TestDrain:
    """Fetch, save and acknowledge until the queue is empty."""

    def test_two_responses_then_empty(self, client, folders, make_response):
        client.responses = [make_response("PO-1"), make_response("PO-2")]

        stats = ReconciliationProcessor(client, folders).process()

        assert sorted(p.name for p in folders.responses.iterdir()) == ["PO-1.xml", "PO-2.xml"]
        assert client.calls_named("remove_order_response_from_queue") == [
            ("remove_order_response_from_queue", "https://api.example.com/queue/PO-1"),
            ("remove_order_response_from_queue", "https://api.example.com/queue/PO-2"),
        ]
        assert len(client.calls_named("get_order_response")) == 3
        assert stats == {
            "received": 2,
            "saved": 2,
            "acknowledged": 2,
            "ack_failures": 0,
            "errors": 0,
        }

    def test_empty_queue(self, client, folders):
        stats = ReconciliationProcessor(client, folders).process()

        assert client.calls == [("get_order_response",)]
        assert stats["received"] == 0
        assert stats["errors"] == 0

    def test_saved_payload_is_reserialized_xml(self, client, folders, make_response):
        client.responses = [make_response("PO-1")]

        ReconciliationProcessor(client, folders).process()

        saved = (folders.responses / "PO-1.xml").read_bytes()
        assert saved.startswith(b"<?xml")
        root = ET.fromstring(saved)
        assert root.tag == "OrderResponse"
        assert root.findtext("OrderNumber") == "PO-1"

    def test_namespace_prefix_is_kept(self, client, folders):
        payload = b'<r:OrderResponse xmlns:r="urn:jakamo:response"><r:Status>OK</r:Status></r:OrderResponse>'
        client.responses = [Ok(OrderResponse(order_number="PO-5", xml=payload, ack_uri="ack-5"))]

        ReconciliationProcessor(client, folders).process()

        saved = (folders.responses / "PO-5.xml").read_text(encoding="utf-8")
        assert "<r:OrderResponse" in saved

    def test_redelivery_overwrites_previous_copy(self, client, folders, make_response):
        (folders.responses / "PO-1.xml").write_text("<Old/>")
        client.responses = [make_response("PO-1")]

        ReconciliationProcessor(client, folders).process()

        assert b"OrderNumber" in (folders.responses / "PO-1.xml").read_bytes()
        assert [p.name for p in folders.responses.iterdir()] == ["PO-1.xml"]

    def test_response_without_ack_uri_is_saved_not_acknowledged(self, client, folders):
        client.responses = [Ok(OrderResponse(order_number="PO-3", xml=b"<R/>", ack_uri=""))]

        stats = ReconciliationProcessor(client, folders).process()

        assert (folders.responses / "PO-3.xml").exists()
        assert client.calls_named("remove_order_response_from_queue") == []
        assert stats["saved"] == 1
        assert stats["acknowledged"] == 0


class TestDrainFailures:
    """Failure handling inside a drain pass."""

    def test_fetch_failure_ends_pass(self, client, folders, make_response):
        client.responses = [Err(["Service unavailable"]), make_response("PO-1")]

        stats = ReconciliationProcessor(client, folders).process()

        assert len(client.calls_named("get_order_response")) == 1
        assert list(folders.responses.iterdir()) == []
        assert stats["errors"] == 1

    def test_fetch_exception_ends_pass(self, client, folders, make_response):
        client.responses = [TimeoutError("read timeout"), make_response("PO-1")]

        stats = ReconciliationProcessor(client, folders).process()

        assert len(client.calls_named("get_order_response")) == 1
        assert stats["errors"] == 1

    def test_ack_failure_keeps_file_and_continues(self, client, folders, make_response):
        client.responses = [make_response("PO-1"), make_response("PO-2")]
        client.ack_results["https://api.example.com/queue/PO-1"] = Err(["Gone"])

        stats = ReconciliationProcessor(client, folders).process()

        assert (folders.responses / "PO-1.xml").exists()
        assert (folders.responses / "PO-2.xml").exists()
        assert len(client.calls_named("remove_order_response_from_queue")) == 2
        assert stats["ack_failures"] == 1
        assert stats["acknowledged"] == 1
        assert stats["errors"] == 0

    def test_ack_exception_keeps_file_and_continues(self, client, folders, make_response):
        client.responses = [make_response("PO-1"), make_response("PO-2")]
        client.ack_results["https://api.example.com/queue/PO-1"] = ConnectionError("reset")

        stats = ReconciliationProcessor(client, folders).process()

        assert (folders.responses / "PO-2.xml").exists()
        assert stats["ack_failures"] == 1

    def test_persistence_failure_skips_ack_and_ends_pass(self, client, folders, make_response):
        client.responses = [
            make_response("PO-1"),
            Ok(OrderResponse(order_number="PO-2", xml=b"<broken", ack_uri="ack-2")),
            make_response("PO-3"),
        ]

        stats = ReconciliationProcessor(client, folders).process()

        acks = client.calls_named("remove_order_response_from_queue")
        assert acks == [("remove_order_response_from_queue", "https://api.example.com/queue/PO-1")]
        assert len(client.calls_named("get_order_response")) == 2
        assert [p.name for p in folders.responses.iterdir()] == ["PO-1.xml"]
        assert stats["errors"] == 1
        assert stats["saved"] == 1

    def test_write_error_skips_ack(self, client, folders, make_response):
        client.responses = [make_response("PO-1")]

        with patch("xml.etree.ElementTree.ElementTree.write", side_effect=OSError("disk full")):
            stats = ReconciliationProcessor(client, folders).process()

        assert client.calls_named("remove_order_response_from_queue") == []
        assert stats["errors"] == 1
        assert list(folders.responses.iterdir()) == []

    def test_stop_event_ends_drain(self, client, folders, make_response):
        client.responses = [make_response("PO-1"), make_response("PO-2")]
        stop_event = threading.Event()
        original = client.remove_order_response_from_queue

        def ack_then_stop(ack_uri):
            stop_event.set()
            return original(ack_uri)

        client.remove_order_response_from_queue = ack_then_stop

        stats = ReconciliationProcessor(client, folders, stop_event).process()

        assert stats["received"] == 1
        assert len(client.calls_named("get_order_response")) == 1


class TestSave:
    """Tests for ReconciliationProcessor.save()."""

    @pytest.mark.parametrize("order_number", ["../escape", "a/b", ".hidden"])
    def test_unsafe_order_numbers_are_refused(self, client, folders, order_number):
        processor = ReconciliationProcessor(client, folders)
        response = OrderResponse(order_number=order_number, xml=b"<R/>")

        with pytest.raises(PersistenceFailure):
            processor.save(response)

    def test_empty_payload_is_refused(self, client, folders):
        processor = ReconciliationProcessor(client, folders)

        with pytest.raises(PersistenceFailure, match="not well-formed"):
            processor.save(OrderResponse(order_number="PO-1", xml=b""))


class TestAcknowledge:
    """Tests for ReconciliationProcessor.acknowledge()."""

    def test_not_found_result_is_a_failure(self, client, folders):
        client.ack_results["ack-1"] = NotFound()
        processor = ReconciliationProcessor(client, folders)

        with pytest.raises(AcknowledgmentFailure, match="NotFound"):
            processor.acknowledge(OrderResponse(order_number="PO-1", xml=b"<R/>", ack_uri="ack-1"))
