"""
Abstract base class for polling passes.
"""

from abc import ABC, abstractmethod


class BaseProcessor(ABC):
    """Abstract processor interface: one call is one pass."""

    @abstractmethod
    def process(self) -> dict:
        """
        Run a single pass.

        Returns:
            Processing statistics dict
        """
        pass
