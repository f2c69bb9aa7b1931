from .serializer import (
    MutationSerializer,
    OperationStatus,
    PendingOperation,
)
from .utils import is_coro_func

__all__ = (
    "MutationSerializer",
    "OperationStatus",
    "PendingOperation",
    "is_coro_func",
)
