"""
Best-effort side channel for post-commit work.

Audit writes, mutation audits and notifications are submitted here only after
the submission transaction has committed. A task failure is logged and never
reaches the partner's response.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Protocol, Tuple

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)

SideTask = Callable[[], None]


class SideChannel(Protocol):
    def submit(self, label: str, task: SideTask) -> None: ...


def _run_safely(label: str, task: SideTask) -> None:
    try:
        task()
    except Exception:
        logger.exception("Side-channel task failed", extra={"side_task": label})


class InlineSideChannel:
    """Runs each task immediately in the caller's thread. Used by scripts and tests."""

    def __init__(self) -> None:
        self.completed: List[str] = []

    def submit(self, label: str, task: SideTask) -> None:
        _run_safely(label, task)
        self.completed.append(label)


class BackgroundTasksSideChannel:
    """Defers tasks until FastAPI has sent the response."""

    def __init__(self, background_tasks: BackgroundTasks):
        self._background_tasks = background_tasks
        self.submitted: List[Tuple[str, SideTask]] = []

    def submit(self, label: str, task: SideTask) -> None:
        self.submitted.append((label, task))
        self._background_tasks.add_task(_run_safely, label, task)
