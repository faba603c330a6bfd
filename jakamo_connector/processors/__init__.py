"""Polling passes run by the scheduler."""

from .base import BaseProcessor
from .dispatch import DispatchProcessor
from .reconcile import ReconciliationProcessor

__all__ = ["BaseProcessor", "DispatchProcessor", "ReconciliationProcessor"]
