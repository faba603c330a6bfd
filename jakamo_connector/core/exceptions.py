"""
Exception types raised by the connector.

Everything below ConnectorError is a per-item failure: the dispatch and
reconciliation passes catch these, log them and move on.
"""


class ConnectorError(Exception):
    """Base class for connector errors."""


class ConfigurationError(ConnectorError):
    """Settings failed startup validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            f"Configuration validation failed with {len(self.errors)} error(s): "
            + "; ".join(self.errors)
        )


class ClassificationError(ConnectorError):
    """Document is not well-formed XML or has an unknown root element."""


class MissingIdentifierError(ConnectorError):
    """Update or status document carries no ID/OrderID element."""


class RemoteCallFailure(ConnectorError):
    """The remote API answered with a failure result."""

    def __init__(self, operation: str, errors: list[str]):
        self.operation = operation
        self.errors = list(errors)
        super().__init__(f"{operation} failed: {', '.join(self.errors) or 'no details'}")


class PersistenceFailure(ConnectorError):
    """An order response could not be written to the responses folder."""


class AcknowledgmentFailure(ConnectorError):
    """An order response could not be removed from the remote queue."""


class RelocationFailure(ConnectorError):
    """A file could not be moved to its destination folder."""
