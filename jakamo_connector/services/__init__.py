"""Remote service clients."""

from .base import BasePurchaseOrderClient
from .jakamo import JakamoClient

__all__ = ["BasePurchaseOrderClient", "JakamoClient"]
