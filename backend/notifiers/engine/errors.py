from __future__ import annotations

from config.domain_exceptions import (
    ConfigurationError,
    DomainError,
    OperationTimeoutError,
    ServiceUnavailableError,
)


class ReconcileError(DomainError):
    pass


class SourceError(ReconcileError, ServiceUnavailableError):
    """
    Listing subscribers or events failed; the cycle is aborted.
    """

    def __init__(self, source: str, error: Exception | str):
        self.source = source
        self.error = str(error)
        super().__init__(f"Failed to list {source}: {self.error}")

    @property
    def operation(self) -> str:
        return f"list_{self.source}"


class StatusUpdateError(ReconcileError, ServiceUnavailableError):
    """
    Persisting a subscriber's dispatch status failed.
    """

    operation = "update_status"

    def __init__(self, subscriber: str, error: Exception | str):
        self.subscriber = subscriber
        self.error = str(error)
        super().__init__(f"Failed to update status for notifier {subscriber}: {self.error}")


class CycleCancelledError(ReconcileError, OperationTimeoutError):
    pass


class UnsupportedChannelError(ConfigurationError):
    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Unsupported notifier channel: {channel}")
