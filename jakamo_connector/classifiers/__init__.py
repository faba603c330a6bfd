"""
Document classifiers module.

Decides which remote operation an inbound order document belongs to.
"""

from jakamo_connector.classifiers.document import classify, extract_order_id, inspect

__all__ = [
    "classify",
    "extract_order_id",
    "inspect",
]
