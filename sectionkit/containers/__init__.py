# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from .base import DataSourceContainer
from .hashable import HashableContainer

__all__ = ("DataSourceContainer", "HashableContainer")
