from .concurrency import (
    MutationSerializer,
    OperationStatus,
    PendingOperation,
    is_coro_func,
)

__all__ = (
    "MutationSerializer",
    "OperationStatus",
    "PendingOperation",
    "is_coro_func",
)
