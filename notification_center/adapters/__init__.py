"""Storage, transport and queue adapters.

Contracts:
    StorageAdapter, TransportAdapter, QueueAdapter (abstract base classes)
    ReceiptStore, DigestStore, SupportsHealthCheck, SupportsBatchSend
    (optional capabilities, checked with isinstance)

In-memory implementations:
    MemoryStorageAdapter, MemoryQueueAdapter, ConsoleTransport
"""

from notification_center.adapters.base import (
    DigestStore,
    QueueAdapter,
    ReceiptStore,
    StorageAdapter,
    SupportsBatchSend,
    SupportsHealthCheck,
    TransportAdapter,
)
from notification_center.adapters.console_transport import ConsoleTransport
from notification_center.adapters.memory_queue import MemoryQueueAdapter
from notification_center.adapters.memory_storage import MemoryStorageAdapter

__all__ = [
    "StorageAdapter",
    "TransportAdapter",
    "QueueAdapter",
    "ReceiptStore",
    "DigestStore",
    "SupportsHealthCheck",
    "SupportsBatchSend",
    "MemoryStorageAdapter",
    "MemoryQueueAdapter",
    "ConsoleTransport",
]
