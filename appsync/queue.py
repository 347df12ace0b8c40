"""Task queue abstraction and its Celery implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Type, Union

from celery import Celery, Task
from celery.schedules import schedstate, schedule

logger = logging.getLogger(__name__)

# A handler receives the worker context followed by the task payload as kwargs.
TaskHandler = Callable[..., Any]
Period = Union[int, float, timedelta]


def _as_timedelta(value: Period) -> timedelta:
    return value if isinstance(value, timedelta) else timedelta(seconds=value)


class TaskQueue(ABC):
    """Schedules recurring jobs and enqueues fire-and-forget jobs by hook name."""

    @abstractmethod
    def schedule_recurring(
        self, hook: str, period: Period, initial_delay: Period = 0
    ) -> bool:
        """Register ``hook`` to run every ``period``.

        No-op when a recurring schedule for ``hook`` is already active. Returns
        True only when a new schedule was registered.
        """

    @abstractmethod
    def enqueue_async(self, hook: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        """Enqueue one out-of-process run of ``hook``. Never deduplicates."""


class delayed_schedule(schedule):
    """
    Interval schedule that first fires at ``start_at``, then every ``run_every``.

    Beat stamps a fresh entry's ``last_run_at`` with the current time, so the
    first fire is tracked on the schedule itself rather than inferred from it.
    """

    def __init__(self, run_every, start_at: datetime, relative=False, nowfun=None, app=None):
        super().__init__(run_every=run_every, relative=relative, nowfun=nowfun, app=app)
        self.start_at = start_at
        self.first_run_pending = True

    def is_due(self, last_run_at: datetime) -> schedstate:
        now = self.now()
        if now < self.start_at:
            return schedstate(is_due=False, next=(self.start_at - now).total_seconds())
        if self.first_run_pending:
            self.first_run_pending = False
            return schedstate(is_due=True, next=self.seconds)
        return super().is_due(last_run_at)

    def __repr__(self) -> str:
        return f"<delayed_schedule: every {self.human_seconds} from {self.start_at.isoformat()}>"

    def __reduce__(self):
        return self.__class__, (self.run_every, self.start_at, self.relative, self.nowfun)


class CeleryTaskQueue(TaskQueue):
    """
    TaskQueue backed by Celery.

    Recurring jobs are entries of the beat schedule keyed by hook, so a hook can
    hold at most one entry. One-shot jobs are sent by name with ``send_task``.
    """

    def __init__(self, app: Celery) -> None:
        self._app = app

    @property
    def app(self) -> Celery:
        return self._app

    def is_scheduled(self, hook: str) -> bool:
        return hook in (self._app.conf.beat_schedule or {})

    def schedule_recurring(
        self, hook: str, period: Period, initial_delay: Period = 0
    ) -> bool:
        # Copy before writing: the default beat_schedule dict is shared across apps
        beat_schedule = dict(self._app.conf.beat_schedule or {})
        if hook in beat_schedule:
            logger.debug("Recurring job %s already scheduled", hook)
            return False

        start_at = datetime.now(timezone.utc) + _as_timedelta(initial_delay)
        beat_schedule[hook] = {
            "task": hook,
            "schedule": delayed_schedule(_as_timedelta(period), start_at, app=self._app),
            "kwargs": {},
        }
        self._app.conf.beat_schedule = beat_schedule
        logger.info(
            "Scheduled recurring job %s every %s starting %s",
            hook,
            _as_timedelta(period),
            start_at.isoformat(),
        )
        return True

    def enqueue_async(self, hook: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        result = self._app.send_task(hook, kwargs=dict(payload or {}))
        logger.debug("Enqueued %s with %s", hook, payload)
        return result.id if result is not None else None

    def register_handlers(
        self, handlers: Mapping[str, TaskHandler], base: Type[Task] = Task
    ) -> Dict[str, Task]:
        """Create one named Celery task per entry of the hook to handler table."""
        registered: Dict[str, Task] = {}
        for hook, handler in handlers.items():
            registered[hook] = self._app.task(bind=True, base=base, name=hook, shared=False)(
                _bind_handler(handler)
            )
        return registered


def _bind_handler(handler: TaskHandler) -> Callable[..., Any]:
    def run(task: Task, **payload: Any) -> Any:
        return handler(task.context, **payload)

    run.__name__ = handler.__name__
    run.__doc__ = handler.__doc__
    return run


__all__ = ["TaskQueue", "CeleryTaskQueue", "delayed_schedule", "TaskHandler"]
