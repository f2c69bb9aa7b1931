# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

E = TypeVar("E")


__all__ = (
    "Observer",
    "Observable",
    "Collective",
    "Ordering",
)


class Observer(ABC):
    """Receives change notifications from an observable."""


class Observable(ABC):
    """Source of change notifications."""


class Collective(Observable, Generic[E]):
    """Base for collections of sections."""

    @abstractmethod
    def number_of_sections(self) -> int:
        pass

    @abstractmethod
    def number_of_items(self, section_index: int) -> int | None:
        pass


class Ordering(ABC, Generic[E]):
    """Base for ordered, duplicate-free sequences of items."""

    @abstractmethod
    def append(self, items, /):
        pass

    @abstractmethod
    def delete(self, items, /):
        pass
