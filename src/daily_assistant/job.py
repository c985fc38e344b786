#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Report Job
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
One end-to-end run: gather notes and commits, compose, complete, deliver.

The job holds no state between runs. A day with no notes and no commits is
skipped before the LLM is called.
"""

import logging
from typing import Callable, Optional

from .config import AppConfig, Settings, get_settings
from .git_scanner import GitScanner
from .llm import AIRequest, call_ai
from .log_store import LogStore
from .models import JobResult, JobStatus, ReportMode
from .notifier import FeishuClient
from .prompt import compose_prompt

logger = logging.getLogger(__name__)

NOTHING_TO_REPORT = "No logs or commits today. Skipping report."


class ReportJob:
    """
    Wires the pipeline stages together.

    Collaborators are injectable so tests can substitute fakes for the
    network-facing stages.
    """

    def __init__(
        self,
        store: LogStore,
        scanner: Optional[GitScanner] = None,
        settings: Optional[Settings] = None,
        complete: Optional[Callable[[AIRequest], str]] = None,
        notifier_factory: Optional[Callable[[str, str], FeishuClient]] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.scanner = scanner or GitScanner(self.settings.git_binary, self.settings.git_timeout)
        self._complete = complete or (lambda request: call_ai(request, self.settings))
        self._notifier_factory = notifier_factory or (
            lambda app_id, secret: FeishuClient(app_id, secret, settings=self.settings)
        )

    def generate(
        self,
        config: AppConfig,
        mode: ReportMode = ReportMode.ANALYSIS,
        deep_analysis: Optional[bool] = None,
    ) -> JobResult:
        """
        Gather, compose and complete, without delivering.

        Raises:
            ProviderError: If the AI call fails
            ScanError: If git cannot be spawned at all
        """
        notes = self.store.list_today()
        deep = config.deep_analysis if deep_analysis is None else deep_analysis
        scan = self.scanner.scan(config.git_paths, deep_analysis=deep)

        if scan.skipped:
            logger.warning(f"{scan.skipped} repository path(s) skipped during scan")

        if not notes and not scan.commits:
            logger.info(NOTHING_TO_REPORT)
            return JobResult(status=JobStatus.SKIPPED, error=NOTHING_TO_REPORT)

        prompt = compose_prompt(notes, scan.commits, config, mode)
        logger.debug(f"Prompt length: {len(prompt)} chars")

        report = self._complete(AIRequest.from_config(config, prompt))

        return JobResult(
            status=JobStatus.SUCCEEDED,
            note_count=len(notes),
            commit_count=len(scan.commits),
            prompt=prompt,
            report=report,
        )

    def deliver(self, config: AppConfig, result: JobResult) -> JobResult:
        """
        Send a generated report via Feishu when fully configured.

        Raises:
            NotifierError: If any delivery step fails
        """
        if not config.feishu_configured:
            logger.warning("Feishu config missing, skipping send.")
            return result

        logger.info("Sending report to Feishu...")
        with self._notifier_factory(config.feishu_app_id, config.feishu_app_secret) as client:
            client.send_report(config.feishu_target_email, result.report)

        result.delivered = True
        return result

    def run(self, config: AppConfig, mode: ReportMode = ReportMode.ANALYSIS, deliver: bool = True) -> JobResult:
        """
        Execute one job and report the outcome instead of raising.

        Returns:
            JobResult (status failed carries the error text; a delivery
            failure keeps the generated report)
        """
        try:
            result = self.generate(config, mode)
        except Exception as e:
            logger.error(f"Report job failed: {e}")
            return JobResult(status=JobStatus.FAILED, error=str(e))

        if result.status is JobStatus.SUCCEEDED and deliver:
            try:
                self.deliver(config, result)
            except Exception as e:
                logger.error(f"Report delivery failed: {e}")
                result.status = JobStatus.FAILED
                result.error = str(e)

        return result
