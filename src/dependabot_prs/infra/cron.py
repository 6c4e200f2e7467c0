"""Cron-driven background refresh using APScheduler.

The job runs on APScheduler's thread pool, so the orchestrator's retry wait
blocks only that worker thread and never the callers of the read path.
"""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..core.services.refresh_orchestrator import RefreshOrchestrator

logger = logging.getLogger(__name__)


JOB_ID = "pr_refresh"

# Crontab numbering: 0 and 7 are Sunday. APScheduler counts 0 as Monday, so
# numeric days are rewritten as names before the trigger is built.
_CRON_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def _day_of_week_item(item: str) -> str:
    base, _, step = item.partition("/")
    if base in ("*", "?") and not step:
        return "*"
    if base in ("*", "?"):
        first, last = 0, 6
    elif "-" in base:
        start, _, end = base.partition("-")
        if not (start.isdigit() and end.isdigit()):
            return item
        first, last = int(start), int(end)
    elif base.isdigit():
        first = int(base)
        last = 6 if step else first
    else:
        # Names (mon-fri) already mean the same thing to APScheduler
        return item

    if step and not step.isdigit():
        raise ValueError(f"Invalid day-of-week step in {item!r}")
    stride = int(step) if step else 1
    if last > 7 or first > last or stride < 1:
        raise ValueError(f"Invalid day-of-week value {item!r}: expected 0-7 (0 and 7 are Sunday)")

    days = sorted({day % 7 for day in range(first, last + 1, stride)})
    return ",".join(_CRON_DAY_NAMES[day] for day in days)


def translate_day_of_week(field: str) -> str:
    """Rewrite a crontab day-of-week field (ranges, lists, steps) with day names."""
    names: dict[str, None] = {}
    for item in field.lower().split(","):
        names.update(dict.fromkeys(_day_of_week_item(item).split(",")))
    return ",".join(names)


def build_cron_trigger(expression: str, timezone: str = "UTC") -> CronTrigger:
    """Build a trigger from a 5-field crontab or a 6-field expression with leading seconds."""
    fields = expression.split()
    if len(fields) == 5:
        second = "0"
        minute, hour, day, month, day_of_week = fields
    elif len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
    else:
        raise ValueError(f"Invalid cron expression {expression!r}: expected 5 or 6 fields, got {len(fields)}")

    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day="*" if day == "?" else day,
        month=month,
        day_of_week=translate_day_of_week(day_of_week),
        timezone=timezone,
    )


class CronRefreshTimer:
    """Manages the APScheduler instance and the refresh job registration."""

    def __init__(self, orchestrator: RefreshOrchestrator, cron: str, enabled: bool = True) -> None:
        self._orchestrator = orchestrator
        self._cron = cron
        self._enabled = enabled
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> bool:
        """Start the scheduler and register the refresh job. Returns False when disabled."""
        if not self._enabled:
            logger.info("[scheduler] Disabled via DEPENDABOT_PRS_SCHEDULER_ENABLED=false")
            return False
        if self.running:
            return True

        trigger = build_cron_trigger(self._cron)
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._orchestrator.refresh,
            trigger=trigger,
            id=JOB_ID,
            name="Dependabot PR refresh",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("[scheduler] PR refresh scheduler started with cron: %s", self._cron)
        return True

    def next_run_time(self):
        if not self._scheduler:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def stop(self) -> None:
        """Interrupt any retry wait in progress and shut the scheduler down."""
        if self._scheduler:
            self._orchestrator.interrupt()
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("[scheduler] Stopped")
