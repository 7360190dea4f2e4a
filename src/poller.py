"""
Jenkins Exporter: Polling Loop

Every `update_interval` seconds:
  1. Check that the Jenkins API answers       (jenkins_api.client)
  2. For each configured job fetch the last completed build, the last
     (possibly running) build, its test report and pipeline stages
  3. Translate the nested API fields into flat gauge samples
  4. Publish the samples in one go           (metrics.publish)

A failure for one job is logged and that job is skipped for the cycle; a
failure to reach Jenkins at all skips the whole cycle and leaves the previous
snapshot in place.  There is no retry: the next tick simply tries again.
"""

from typing import List, Optional

import structlog

from jenkins_api.client import JenkinsClient, JenkinsError
from jenkins_api.models import STATUS_FAILURE, Build, Job, PipelineRun, TestResult
from metrics import Sample, publish
from settings import Settings

logger = structlog.get_logger()

_STAGE_STATUS_CODES = {
    "SUCCESS": 0,
    "IN_PROGRESS": 1,
    "UNSTABLE": 2,
    "FAILED": 3,
}
_UNKNOWN_STAGE_STATUS = -1


def build_success_value(result: Optional[str]) -> float:
    """0 for a FAILURE result, 1 for anything else (including unknown)."""
    return 0 if result == STATUS_FAILURE else 1


def stage_status_value(status: Optional[str]) -> float:
    return _STAGE_STATUS_CODES.get(status, _UNKNOWN_STAGE_STATUS)


def format_stage_id(stage_id: str) -> str:
    """Left-pad stage ids with zeros to three characters so they sort."""
    return str(stage_id).rjust(3, "0")


class Poller:
    """
    Periodically scrapes Jenkins and republishes the result as gauges.

    All state is held on the instance; pass a pre-built client to share a
    session or to substitute a fake in tests.
    """

    def __init__(self, settings: Settings, client: Optional[JenkinsClient] = None):
        self.settings = settings
        self.jobs = list(settings.jenkins.jobs)
        self.update_interval = settings.jenkins.update_interval
        self.client = client or JenkinsClient(
            url=settings.jenkins.url,
            user=settings.jenkins.user,
            password=settings.jenkins.password,
            verify_tls=settings.jenkins.verify_tls,
        )
        self.cycles_completed = 0

    async def initialize(self) -> None:
        await self.client.initialize()
        logger.info("poller_initialized", url=self.settings.jenkins.url, jobs=self.jobs,
                    interval=self.update_interval)

    async def shutdown(self) -> None:
        await self.client.shutdown()
        logger.info("poller_stopped")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self, shutdown_handler, on_cycle=None) -> None:
        """
        Poll until `shutdown_handler.shutdown_requested` turns true.

        `shutdown_handler.sleep(seconds)` must return early once shutdown is
        requested.  `on_cycle` is called after every completed cycle.
        """
        logger.info("polling_loop_started", interval=self.update_interval)

        while not shutdown_handler.shutdown_requested:
            try:
                if await self.poll_once() and on_cycle:
                    on_cycle()
            except Exception as exc:
                logger.error("polling_loop_error", error=str(exc), exc_info=True)

            await shutdown_handler.sleep(self.update_interval)

        logger.info("polling_loop_stopped")

    async def poll_once(self) -> bool:
        """
        Run one collection cycle.

        Returns True when the metrics were republished, False when Jenkins
        could not be reached and the cycle was abandoned.
        """
        logger.debug("collecting_metrics", url=self.settings.jenkins.url)
        try:
            await self.client.ping()
        except JenkinsError as exc:
            logger.error("jenkins_unreachable", url=self.settings.jenkins.url, error=str(exc))
            return False

        samples: List[Sample] = []
        for name in self.jobs:
            try:
                samples.extend(await self.collect_job(name))
            except JenkinsError as exc:
                logger.error("job_collection_failed", job=name, error=str(exc))
                continue
            logger.debug("job_collected", job=name)

        publish(samples)
        self.cycles_completed += 1
        logger.info("metrics_updated", jobs=len(self.jobs), samples=len(samples))
        return True

    # ------------------------------------------------------------------
    # Per-job collection
    # ------------------------------------------------------------------

    async def collect_job(self, name: str) -> List[Sample]:
        """Fetch everything for job `name` and map it to gauge samples."""
        job = await self.client.get_job(name)
        last_completed = await self.client.get_last_completed_build(name, job)
        last_build = await self.client.get_last_build(name, job)
        test_result = await self.client.get_test_report(name, last_completed.number)

        live_pipeline = None
        if last_build.building:
            live_pipeline = await self.client.get_pipeline_run(name, last_build.number)
        completed_pipeline = await self.client.get_pipeline_run(name, last_completed.number)

        return self.map_job(job, last_completed, last_build, test_result,
                            completed_pipeline, live_pipeline, fallback_name=name)

    def map_job(
        self,
        job: Job,
        last_completed: Build,
        last_build: Build,
        test_result: TestResult,
        completed_pipeline: PipelineRun,
        live_pipeline: Optional[PipelineRun] = None,
        fallback_name: str = "",
    ) -> List[Sample]:
        jobname = job.name or fallback_name
        completed_id = str(last_completed.number)
        common = [jobname, completed_id]
        samples: List[Sample] = []

        samples.append(Sample("jenkins_build_duration_seconds", common, last_completed.duration_seconds))
        samples.append(Sample("jenkins_build_timestamp", common, last_completed.timestamp_seconds))

        samples.append(Sample("jenkins_build_test_count", common + ["fail"], test_result.fail_count))
        samples.append(Sample("jenkins_build_test_count", common + ["skip"], test_result.skip_count))
        samples.append(Sample("jenkins_build_test_count", common + ["pass"], test_result.pass_count))

        running_id = str(last_build.number)
        is_good = "1" if last_build.is_good else "0"
        running = 1 if last_build.building else 0
        samples.append(Sample("jenkins_running_build", [jobname, running_id, is_good], running))

        if running:
            elapsed = 0
            for stage in (live_pipeline or PipelineRun()).stages:
                elapsed += stage.duration_seconds
                samples.append(Sample(
                    "jenkins_running_build_pipeline_status",
                    [jobname, running_id, format_stage_id(stage.id), stage.name],
                    stage_status_value(stage.status),
                ))
            samples.append(Sample("jenkins_running_build_elapsed_time",
                                  [jobname, running_id, is_good], elapsed))

        samples.append(Sample("jenkins_build_success", common, build_success_value(last_completed.result)))

        for suite in test_result.suites:
            for case in suite.cases:
                if case.is_failing:
                    samples.append(Sample(
                        "jenkins_build_test_case_failure_age",
                        common + [suite.name, case.name, case.status, str(case.failed_since)],
                        case.age,
                    ))

        for stage in completed_pipeline.stages:
            samples.append(Sample(
                "jenkins_build_pipeline_duration_seconds",
                [jobname, completed_id, format_stage_id(stage.id), stage.name],
                stage.duration_seconds,
            ))

        return samples
