# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

import logging

from ._errors import (
    MutationError,
    SectionKitError,
    SerializerClosedError,
)
from .config import settings
from .containers import DataSourceContainer, HashableContainer
from .ln.concurrency import MutationSerializer, OperationStatus, PendingOperation
from .protocols import (
    ChangeKind,
    ChangeObserver,
    ChangeRecorder,
    ChangeSet,
    IndexPath,
    ItemChange,
    ObserverRegistry,
    Section,
    SectionChange,
)
from .version import __version__

logger = logging.getLogger(__name__)
logger.setLevel(settings.SECTIONKIT_LOG_LEVEL)

__all__ = (
    "__version__",
    "ChangeKind",
    "ChangeObserver",
    "ChangeRecorder",
    "ChangeSet",
    "DataSourceContainer",
    "HashableContainer",
    "IndexPath",
    "ItemChange",
    "MutationError",
    "MutationSerializer",
    "ObserverRegistry",
    "OperationStatus",
    "PendingOperation",
    "Section",
    "SectionChange",
    "SectionKitError",
    "SerializerClosedError",
    "settings",
)
