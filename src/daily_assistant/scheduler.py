#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Report Scheduler
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Background scheduler for the daily report.

One worker wakes every poll interval, reloads the configuration snapshot and
keeps a single daily job registered at the configured HH:MM. The schedule
library holds the next fire instant; a tick that finds it crossed runs the job
once and the instant moves to the next day, so a late tick still fires exactly
once and a second tick in the same minute never fires again. A time
registered during its own matching minute is due on that same tick.

Jobs run synchronously on the worker. Every job error is caught and logged;
the worker keeps running for the next day.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Optional

import schedule

from .config import AppConfig, ConfigError, JsonConfigProvider, Settings, get_settings, validate_schedule_time
from .job import ReportJob
from .models import JobResult, JobStatus, ReportMode

logger = logging.getLogger(__name__)

MINUTE_KEY = "%Y-%m-%d %H:%M"


class SchedulerState(str, Enum):
    IDLE = "idle"
    FIRING = "firing"


class Scheduler:
    """
    Polls configuration and fires the report job at the configured time.

    Attributes:
        poll_interval: Seconds between ticks
        state: IDLE while waiting, FIRING while a job runs
        last_result: Outcome of the most recent job, if any
    """

    def __init__(
        self,
        config_provider: JsonConfigProvider,
        job: ReportJob,
        settings: Optional[Settings] = None,
        poll_interval: Optional[float] = None,
    ):
        settings = settings or get_settings()
        self.config_provider = config_provider
        self.job = job
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval

        self.state = SchedulerState.IDLE
        self.last_result: Optional[JobResult] = None

        self._jobs = schedule.Scheduler()
        self._daily: Optional[schedule.Job] = None
        self._registered_time: Optional[str] = None
        self._last_fired_minute: Optional[str] = None
        self._snapshot: Optional[AppConfig] = None

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ══════════════════════════════════════════════════════════════════════
    # SCHEDULE REGISTRATION
    # ══════════════════════════════════════════════════════════════════════

    @property
    def scheduled_time(self) -> Optional[str]:
        return self._registered_time

    @property
    def next_run(self) -> Optional[datetime]:
        """Next fire instant, or None when nothing is scheduled."""
        return self._daily.next_run if self._daily is not None else None

    def sync(self, config: AppConfig) -> None:
        """Register, move or cancel the daily job to match the snapshot."""
        desired = config.schedule_time if config.schedule_active else None

        if desired is not None:
            try:
                validate_schedule_time(desired)
            except ConfigError as e:
                logger.warning(f"{e}; scheduled delivery disabled until fixed")
                desired = None

        if desired == self._registered_time:
            return

        if self._daily is not None:
            self._jobs.cancel_job(self._daily)
            self._daily = None
            logger.info(f"Cancelled daily report at {self._registered_time}")

        self._registered_time = desired
        if desired is not None:
            self._daily = self._jobs.every().day.at(desired).do(self._fire)
            now = datetime.now()
            if now.strftime("%H:%M") == desired and self._last_fired_minute != now.strftime(MINUTE_KEY):
                # registered inside the matching minute; due on this tick
                self._daily.next_run = now
            logger.info(f"Daily report scheduled at {desired} (next run {self._daily.next_run:%Y-%m-%d %H:%M})")

    # ══════════════════════════════════════════════════════════════════════
    # EXECUTION
    # ══════════════════════════════════════════════════════════════════════

    def _fire(self) -> None:
        """Run one job against the current snapshot. Never raises."""
        config = self._snapshot or self.config_provider.load()

        self._last_fired_minute = datetime.now().strftime(MINUTE_KEY)
        self.state = SchedulerState.FIRING
        logger.info(f"It's time! ({datetime.now():%H:%M}) Starting scheduled report...")
        try:
            result = self.job.run(config, ReportMode.ANALYSIS, deliver=True)
            self.last_result = result

            if result.status is JobStatus.SUCCEEDED:
                if result.delivered:
                    logger.info("Scheduled report generated and delivered")
                else:
                    logger.info("Scheduled report generated (not delivered)")
            elif result.status is JobStatus.SKIPPED:
                logger.info(f"Scheduled report skipped: {result.error}")
            else:
                logger.error(f"Scheduled job failed: {result.error}")
        except Exception as e:
            logger.exception(f"Scheduled job crashed: {e}")
            self.last_result = JobResult(status=JobStatus.FAILED, error=str(e))
        finally:
            self.state = SchedulerState.IDLE

    def tick(self) -> None:
        """Reload config, update the registration and run the job if due."""
        self._snapshot = self.config_provider.load()
        self.sync(self._snapshot)
        self._jobs.run_pending()

    def run_forever(self) -> None:
        """Tick every poll interval until stop() is called."""
        logger.info(f"Scheduler started (poll every {self.poll_interval:.0f}s)")

        try:
            self.sync(self.config_provider.load())
        except Exception as e:
            logger.error(f"Initial schedule load failed: {e}")

        while not self._stop.wait(self.poll_interval):
            try:
                self.tick()
            except Exception as e:
                logger.exception(f"Scheduler tick failed: {e}")

        logger.info("Scheduler stopped")

    # ══════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════════════

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the loop on a background daemon thread."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="report-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop to exit; an in-flight job finishes first."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            self._thread = None
