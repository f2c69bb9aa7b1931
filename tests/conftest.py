# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

import pytest

from sectionkit.containers import HashableContainer
from sectionkit.protocols import ChangeRecorder, Section


@pytest.fixture
def anyio_backend():
    """Pin async tests to asyncio."""
    return "asyncio"


@pytest.fixture
def recorder():
    """A ChangeRecorder kept alive for the whole test."""
    return ChangeRecorder()


@pytest.fixture
def container(recorder):
    """An empty container observed by ``recorder``."""
    return HashableContainer(observer=recorder)


@pytest.fixture
def make_section():
    """Factory for sections: ``make_section(1, 2, 3, name="a")``."""

    def _make(*items, name="", index_title=None):
        return Section(items=list(items), name=name, index_title=index_title)

    return _make
