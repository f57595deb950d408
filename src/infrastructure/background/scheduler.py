# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic Dramatiq tasks.

Uses APScheduler for cron-style job scheduling integrated with Dramatiq
actors. The only default job is the hourly digest dispatcher.

Example:
    from src.infrastructure.background.scheduler import start_scheduler

    scheduler = await start_scheduler()

    # Additional cron job (runs daily at 00:05)
    scheduler.add_cron_task(
        name="Nightly Digest Sweep",
        actor_name="dispatch_due_digests",
        cron_expression="5 0 * * *",
    )
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DIGEST_DISPATCH_CRON = "0 * * * *"


@dataclass
class ScheduledTask:
    """Configuration for a scheduled Dramatiq task.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        actor_name: Name of the Dramatiq actor to call.
        cron_expression: Five-field cron expression.
        args: Positional arguments for the actor.
        kwargs: Keyword arguments for the actor.
        enabled: Whether the task is enabled.
        last_run: Last run timestamp.
        run_count: Total number of runs.
        error_count: Number of failed runs.
    """

    name: str
    actor_name: str
    cron_expression: str
    args: tuple = field(default_factory=tuple)
    kwargs: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    enabled: bool = True
    last_run: datetime | None = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "actor_name": self.actor_name,
            "cron_expression": self.cron_expression,
            "enabled": self.enabled,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


def parse_cron(cron_expression: str) -> CronTrigger:
    """Build a UTC CronTrigger from a five-field cron expression.

    Raises:
        ValueError: If the expression does not have five fields.
    """
    parts = cron_expression.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression: {cron_expression}")

    return CronTrigger(
        minute=parts[0],
        hour=parts[1],
        day=parts[2],
        month=parts[3],
        day_of_week=parts[4],
        timezone="UTC",
    )


class DigestScheduler:
    """Scheduler for periodic Dramatiq task execution.

    Integrates APScheduler with Dramatiq actors. Jobs only enqueue
    messages; the actors do the work in worker processes.

    Attributes:
        _scheduler: APScheduler instance.
        _tasks: Dictionary of scheduled tasks.
        _running: Whether scheduler is running.
    """

    def __init__(self, actor_lookup: Callable[[str], Any] | None = None) -> None:
        """Initialize the scheduler.

        Args:
            actor_lookup: Resolves an actor name to an actor. Defaults to
                looking the name up in the tasks package.
        """
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False
        self._actor_lookup = actor_lookup or self._get_actor

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    @staticmethod
    def _get_actor(actor_name: str) -> Any:
        from src.infrastructure.background import tasks

        return getattr(tasks, actor_name, None)

    def add_cron_task(
        self,
        name: str,
        actor_name: str,
        cron_expression: str,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        enabled: bool = True,
    ) -> ScheduledTask:
        """Add a cron-scheduled task.

        Args:
            name: Task name.
            actor_name: Dramatiq actor to call.
            cron_expression: Cron expression (minute hour day month weekday).
            args: Actor arguments.
            kwargs: Actor keyword arguments.
            enabled: Whether task is enabled.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the cron expression is invalid.
        """
        trigger = parse_cron(cron_expression)
        task = ScheduledTask(
            name=name,
            actor_name=actor_name,
            cron_expression=cron_expression,
            args=args,
            kwargs=kwargs or {},
            enabled=enabled,
        )

        self._tasks[task.id] = task

        if self._scheduler and enabled:
            self._scheduler.add_job(
                self._execute_task,
                trigger=trigger,
                args=[task.id],
                id=task.id,
                name=name,
            )

        logger.info("Added cron task: %s (%s)", name, cron_expression)
        return task

    async def _execute_task(self, task_id: str) -> None:
        """Send a scheduled task's message to Dramatiq.

        Args:
            task_id: ID of the task to execute.
        """
        task = self._tasks.get(task_id)
        if not task or not task.enabled:
            return

        logger.debug("Executing scheduled task: %s", task.name)

        actor = self._actor_lookup(task.actor_name)
        if actor is None:
            task.error_count += 1
            logger.error("Scheduled task %s failed: actor not found: %s", task.name, task.actor_name)
            return

        try:
            actor.send(*task.args, **task.kwargs)
        except Exception as e:
            task.error_count += 1
            logger.error("Scheduled task %s failed: %s", task.name, str(e))
            return

        task.last_run = utc_now()
        task.run_count += 1
        logger.debug("Scheduled task %s sent to queue", task.name)

    def remove_task(self, task_id: str) -> bool:
        """Remove a scheduled task.

        Returns:
            True if removed.
        """
        if task_id not in self._tasks:
            return False

        if self._scheduler:
            try:
                self._scheduler.remove_job(task_id)
            except JobLookupError:
                logger.debug("Task %s had no scheduled job", task_id)

        del self._tasks[task_id]
        logger.info("Removed scheduled task: %s", task_id)
        return True

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.start()
        self._running = True

        logger.info("Digest scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Digest scheduler stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "is_running": self._running,
            "task_count": len(self._tasks),
            "enabled_count": sum(1 for t in self._tasks.values() if t.enabled),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }


# Singleton instance
_scheduler: DigestScheduler | None = None


def get_scheduler() -> DigestScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = DigestScheduler()
    return _scheduler


async def start_scheduler() -> DigestScheduler:
    """Start the scheduler and register the hourly digest dispatcher.

    Returns:
        Started scheduler instance.
    """
    scheduler = get_scheduler()
    await scheduler.start()

    scheduler.add_cron_task(
        name="Hourly Digest Dispatch",
        actor_name="dispatch_due_digests",
        cron_expression=DIGEST_DISPATCH_CRON,
    )

    logger.info("Registered %d default scheduled tasks", len(scheduler.list_tasks()))
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
