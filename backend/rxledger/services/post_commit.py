# Overview: Best-effort follow-up work that runs only after a primary transaction commits.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ..extensions import db

logger = logging.getLogger(__name__)


@dataclass
class TaskFailure:
    name: str
    error: str


@dataclass
class PostCommitTasks:
    """
    Fire-and-forget queue drained after the primary commit.

    Each task is its own unit of work: a failing task is rolled back and
    logged, later tasks still run, and nothing is raised to the caller. The
    primary transaction is already durable and is never retried or undone
    from here.
    """
    tasks: list[tuple[str, Callable[..., Any], tuple, dict]] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)
    failures: list[TaskFailure] = field(default_factory=list)

    def add(self, name: str, func: Callable[..., Any], *args, **kwargs) -> None:
        self.tasks.append((name, func, args, kwargs))

    def run(self) -> list[TaskFailure]:
        pending, self.tasks = self.tasks, []
        for name, func, args, kwargs in pending:
            try:
                self.results[name] = func(*args, **kwargs)
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                logger.error("Post-commit task %s failed: %s", name, exc, exc_info=True)
                self.failures.append(TaskFailure(name=name, error=str(exc)))
        return self.failures
