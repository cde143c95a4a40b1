from __future__ import annotations

import logging
from typing import List

import pytest

import core.logging as core_logging
from core.capabilities import Capability, DataType


@pytest.fixture(autouse=True)
def _restore_wearsync_logger():
    # configure_logging() (called by the CLI) mutates the namespace logger globally;
    # restore it so later tests see the default level and no stale handlers.
    logger = logging.getLogger(core_logging.LOGGER_NAMESPACE)
    level, handlers, configured = logger.level, list(logger.handlers), core_logging._configured
    yield
    logger.setLevel(level)
    logger.handlers[:] = handlers
    core_logging._configured = configured


@pytest.fixture
def capabilities() -> List[Capability]:
    return [
        Capability(DataType.HEART_RATE_BPM, "Heart rate", "bpm", overridable=True, is_standard=True),
        Capability(DataType.LOCATION, "Location", "", overridable=False, is_standard=True),
        Capability(DataType.STEPS, "Steps", "steps", overridable=True, is_standard=False),
    ]
