# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from .change import (
    ChangeEvent,
    ChangeKind,
    ChangeObserver,
    ChangeRecorder,
    ChangeSet,
    ItemChange,
    SectionChange,
)
from .index_path import IndexPath
from .observers import ObserverRegistry
from .section import Section

__all__ = (
    "ChangeEvent",
    "ChangeKind",
    "ChangeObserver",
    "ChangeRecorder",
    "ChangeSet",
    "IndexPath",
    "ItemChange",
    "ObserverRegistry",
    "Section",
    "SectionChange",
)
