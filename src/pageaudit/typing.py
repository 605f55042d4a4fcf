# SPDX-License-Identifier: BSD-3-Clause

"""
Various helpers for static type checking.
"""

from __future__ import annotations

from logging import Logger, LoggerAdapter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    # pylint: disable=unsubscriptable-object
    LoggerBase = LoggerAdapter[Logger]
else:
    LoggerBase = LoggerAdapter
