"""
Abstract purchase-order client used by the dispatch and reconciliation passes.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO

from jakamo_connector.core.models import OrderResponse, Result


class BasePurchaseOrderClient(ABC):
    """Remote purchase-order operations.

    Implementations report failures through the returned Result rather
    than raising; callers still guard against unexpected exceptions.
    """

    @abstractmethod
    def send_order(self, stream: BinaryIO) -> Result:
        """Submit a new order document."""
        pass

    @abstractmethod
    def update_order(self, order_id: str, stream: BinaryIO) -> Result:
        """Submit a change to an existing order."""
        pass

    @abstractmethod
    def send_status_message(self, order_id: str, stream: BinaryIO) -> Result:
        """Submit a status update for an existing order."""
        pass

    @abstractmethod
    def get_order_response(self) -> Result[OrderResponse]:
        """
        Fetch the next order response from the remote queue.

        Returns:
            Ok(OrderResponse), NotFound() when the queue is empty, or Err.
        """
        pass

    @abstractmethod
    def remove_order_response_from_queue(self, ack_uri: str) -> Result:
        """Acknowledge a fetched order response so it leaves the queue."""
        pass
