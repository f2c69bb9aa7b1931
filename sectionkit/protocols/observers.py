# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import weakref
from collections.abc import Iterable
from typing import Any

from .change import ChangeEvent, ChangeObserver

__all__ = ("ObserverRegistry",)

logger = logging.getLogger(__name__)


class ObserverRegistry:
    """Fan-out of change notifications with weakref-based cleanup.

    Observers are held weakly, so an observer that is garbage collected
    drops out of the registry on its own. Delivery is sequential in
    subscription order.

    Example::

        registry = ObserverRegistry()
        registry.subscribe(table_adapter)
        registry.deliver(container, events)
    """

    def __init__(self, *, raise_errors: bool = False) -> None:
        self._observers: list[weakref.ref[ChangeObserver]] = []
        self.raise_errors = raise_errors

    def subscribe(self, observer: ChangeObserver) -> None:
        """Add an observer (idempotent, stored as weakref)."""
        if not isinstance(observer, ChangeObserver):
            raise TypeError(
                f"Observer must be a ChangeObserver, not {type(observer).__name__}"
            )
        for ref in self._observers:
            if ref() is observer:
                return
        self._observers.append(weakref.ref(observer))

    def unsubscribe(self, observer: ChangeObserver) -> None:
        """Remove an observer; unknown observers are ignored."""
        for ref in list(self._observers):
            if ref() is observer:
                self._observers.remove(ref)
                return

    def clear(self) -> None:
        self._observers.clear()

    def _cleanup_dead_refs(self) -> list[ChangeObserver]:
        """Prune dead weakrefs, return live observers."""
        observers, alive_refs = [], []
        for ref in self._observers:
            if (obs := ref()) is not None:
                observers.append(obs)
                alive_refs.append(ref)
        self._observers[:] = alive_refs
        return observers

    def count(self) -> int:
        """Count live observers (triggers dead ref cleanup)."""
        return len(self._cleanup_dead_refs())

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, observer: Any) -> bool:
        return any(ref() is observer for ref in self._observers)

    def deliver(self, container: Any, events: Iterable[ChangeEvent]) -> None:
        """Deliver one bracket of events to every live observer.

        Nothing is delivered for an empty batch. Each observer sees
        ``will_change_content``, the events in order, then
        ``did_change_content``.

        Note:
            Observer exceptions are logged and suppressed so one failing
            observer does not block the others, unless ``raise_errors``
            is set.
        """
        events = tuple(events)
        if not events:
            return
        for observer in self._cleanup_dead_refs():
            try:
                observer.will_change_content(container)
                for event in events:
                    event.dispatch(observer, container)
                observer.did_change_content(container)
            except Exception as e:
                if self.raise_errors:
                    raise
                logger.error(
                    f"Error in observer {type(observer).__name__}: {e}",
                    exc_info=True,
                )

    def section_index_title(self, container: Any, section_name: str) -> str | None:
        """First non-None index title offered by an observer."""
        for observer in self._cleanup_dead_refs():
            title = observer.section_index_title(container, section_name)
            if title is not None:
                return title
        return None
