"""The main entry point for pytest fixtures.

Engine tests run against a manual scheduler and a scripted generator, so no
real timers or network calls are involved.
"""

from __future__ import annotations

import random
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import pytest
from loguru import logger

from boardroom.config import EngineConfig
from boardroom.manager import AutoConversationEngine
from tests.helpers import FakeScheduler, Recorder, ScriptedGenerator

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:^7} | {file.name}:{line} | {message}"


def pytest_configure(config: pytest.Config) -> None:
    """Add a file sink to the default pytest console logging."""
    logs_dir = Path(__file__).resolve().parent.parent / "logs"
    logs_dir.mkdir(exist_ok=True)
    logger.add(
        logs_dir / f"pytest_{datetime.now():%Y%m%d}.log",
        level="DEBUG",
        format=LOG_FORMAT,
        retention="7 days",
    )


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_engine(
    scheduler: FakeScheduler, generator: ScriptedGenerator, recorder: Recorder
) -> Callable[..., AutoConversationEngine]:
    """Build an engine wired to the fake scheduler; kwargs go to EngineConfig."""

    def _make(**config: Any) -> AutoConversationEngine:
        return AutoConversationEngine(
            generator,
            EngineConfig(**config),
            scheduler=scheduler,
            clock=scheduler.time,
            rng=random.Random(7),
            on_message=recorder.messages.append,
            on_state_change=recorder.states.append,
            on_error=recorder.errors.append,
        )

    return _make

