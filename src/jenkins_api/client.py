"""
Jenkins REST client.

Jenkins exposes everything the exporter needs as JSON under ``/api/json``
(jobs, builds, test reports) plus the Pipeline Stage View plugin's
``/wfapi/describe`` for per-stage timings, so a thin aiohttp wrapper over
those endpoints is all that is needed.

Note: this module lives in src/jenkins_api/ (not src/jenkins/) to avoid
shadowing the `jenkins` module installed by python-jenkins.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp
import structlog

from jenkins_api.models import Build, Job, PipelineRun, TestResult

logger = structlog.get_logger()


class JenkinsError(Exception):
    """Any failure talking to the Jenkins API."""


class JobNotFoundError(JenkinsError):
    """The configured job does not exist on the server."""


class BuildNotFoundError(JenkinsError):
    """The job has no build of the requested kind yet."""


class _NotFound(JenkinsError):
    pass


def job_path(name: str) -> str:
    """
    Map a job name to its URL path.

    Folder jobs are addressed with slashes, e.g. "team/app/deploy" becomes
    "/job/team/job/app/job/deploy".
    """
    parts = [p for p in name.strip("/").split("/") if p]
    return "".join(f"/job/{quote(p, safe='')}" for p in parts)


class JenkinsClient:
    """
    Async Jenkins client for job, build, test report and pipeline queries.

    The session is created in `initialize` and shared until `shutdown`.
    """

    def __init__(
        self,
        url: str,
        user: str = "",
        password: str = "",
        verify_tls: bool = False,
        timeout: float = 30,
    ):
        self.url = url.rstrip("/")
        self._auth = aiohttp.BasicAuth(user, password) if user else None
        self._verify_tls = verify_tls
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=self._auth,
                timeout=self._timeout,
                connector=aiohttp.TCPConnector(ssl=self._verify_tls),
                headers={"Accept": "application/json"},
            )
        logger.info("jenkins_client_initialized", url=self.url, authenticated=self._auth is not None)

    async def shutdown(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def ping(self) -> Dict[str, Any]:
        """Fetch the server root document; fails if Jenkins is unreachable."""
        try:
            return await self._get_json("/api/json")
        except _NotFound as exc:
            raise JenkinsError(f"Jenkins API not found at {self.url}") from exc

    async def get_job(self, name: str) -> Job:
        try:
            data = await self._get_json(f"{job_path(name)}/api/json")
        except _NotFound as exc:
            raise JobNotFoundError(f"job does not exist: {name}") from exc
        return Job(data)

    async def get_build(self, name: str, number: int) -> Build:
        try:
            data = await self._get_json(f"{job_path(name)}/{number}/api/json")
        except _NotFound as exc:
            raise BuildNotFoundError(f"build {number} of job {name} does not exist") from exc
        return Build(data)

    async def get_last_build(self, name: str, job: Job) -> Build:
        """The newest build of `job`, which may still be running."""
        if job.last_build_number is None:
            raise BuildNotFoundError(f"job {name} has no builds")
        return await self.get_build(name, job.last_build_number)

    async def get_last_completed_build(self, name: str, job: Job) -> Build:
        if job.last_completed_build_number is None:
            raise BuildNotFoundError(f"job {name} has no completed builds")
        return await self.get_build(name, job.last_completed_build_number)

    async def get_test_report(self, name: str, number: int) -> TestResult:
        """Test report of a build; empty when the build published none."""
        try:
            data = await self._get_json(
                f"{job_path(name)}/{number}/testReport/api/json", params={"depth": "1"}
            )
        except _NotFound:
            logger.debug("jenkins_test_report_missing", job=name, build=number)
            return TestResult.empty()
        return TestResult(data)

    async def get_pipeline_run(self, name: str, number: int) -> PipelineRun:
        """Stage view of a build; no stages for non-pipeline jobs."""
        try:
            data = await self._get_json(f"{job_path(name)}/{number}/wfapi/describe")
        except _NotFound:
            logger.debug("jenkins_pipeline_run_missing", job=name, build=number)
            return PipelineRun()
        return PipelineRun(data)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        if not self._session:
            raise JenkinsError("Jenkins client not initialized")

        url = f"{self.url}{path}"
        try:
            async with self._session.get(url, params=params) as resp:
                if resp.status == 404:
                    raise _NotFound(url)
                resp.raise_for_status()
                data = await resp.json(content_type=None)
        except aiohttp.ClientResponseError as exc:
            logger.error("jenkins_http_error", url=url, status=exc.status, message=exc.message)
            raise JenkinsError(f"HTTP {exc.status} from {url}: {exc.message}") from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            logger.error("jenkins_request_failed", url=url, error=str(exc))
            raise JenkinsError(f"request to {url} failed: {exc}") from exc
        except ValueError as exc:
            logger.error("jenkins_response_not_json", url=url, error=str(exc))
            raise JenkinsError(f"invalid JSON from {url}") from exc

        if not isinstance(data, dict):
            logger.error("jenkins_unexpected_response", url=url, type=type(data).__name__)
            raise JenkinsError(f"unexpected response from {url}")

        logger.debug("jenkins_response", url=url)
        return data
