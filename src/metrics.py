"""
Prometheus metrics for the Jenkins exporter.

All gauges are module-level singletons registered on the default registry.
The poller never touches them directly: it builds a list of `Sample`s for a
whole cycle and hands it to `publish`, which swaps the old snapshot for the
new one without yielding to the event loop.
"""

from typing import Dict, Iterable, NamedTuple, Sequence

import structlog
from prometheus_client import Gauge

logger = structlog.get_logger()

# ------------------------------------------------------------------
# Metrics
# ------------------------------------------------------------------

RUNNING_BUILD = Gauge(
    "jenkins_running_build",
    "1 if there is a build running, 0 otherwise",
    labelnames=["jobname", "buildid", "isgood"],
)

RUNNING_BUILD_PIPELINE_STATUS = Gauge(
    "jenkins_running_build_pipeline_status",
    "Status of each stage of the running build "
    "(0 success, 1 in progress, 2 unstable, 3 failed, -1 unknown)",
    labelnames=["jobname", "buildid", "id", "stage"],
)

RUNNING_BUILD_ELAPSED_TIME = Gauge(
    "jenkins_running_build_elapsed_time",
    "Elapsed time of the current (running) build",
    labelnames=["jobname", "buildid", "isgood"],
)

BUILD_SUCCESS = Gauge(
    "jenkins_build_success",
    "0 if build has failed, 1 if succeeded",
    labelnames=["jobname", "buildid"],
)

BUILD_DURATION_SECONDS = Gauge(
    "jenkins_build_duration_seconds",
    "Duration of the build in seconds",
    labelnames=["jobname", "buildid"],
)

BUILD_TIMESTAMP = Gauge(
    "jenkins_build_timestamp",
    "Timestamp of the build",
    labelnames=["jobname", "buildid"],
)

BUILD_TEST_COUNT = Gauge(
    "jenkins_build_test_count",
    "Number of tests in the build, by result",
    labelnames=["jobname", "buildid", "result"],  # fail | skip | pass
)

BUILD_TEST_CASE_FAILURE_AGE = Gauge(
    "jenkins_build_test_case_failure_age",
    "Age of the failed tests in this build",
    labelnames=["jobname", "buildid", "suite", "case", "status", "failedsince"],
)

BUILD_PIPELINE_DURATION_SECONDS = Gauge(
    "jenkins_build_pipeline_duration_seconds",
    "Duration of each pipeline stage in seconds",
    labelnames=["jobname", "buildid", "id", "stage"],
)

CATALOGUE: Dict[str, Gauge] = {
    "jenkins_running_build": RUNNING_BUILD,
    "jenkins_running_build_pipeline_status": RUNNING_BUILD_PIPELINE_STATUS,
    "jenkins_running_build_elapsed_time": RUNNING_BUILD_ELAPSED_TIME,
    "jenkins_build_success": BUILD_SUCCESS,
    "jenkins_build_duration_seconds": BUILD_DURATION_SECONDS,
    "jenkins_build_timestamp": BUILD_TIMESTAMP,
    "jenkins_build_test_count": BUILD_TEST_COUNT,
    "jenkins_build_test_case_failure_age": BUILD_TEST_CASE_FAILURE_AGE,
    "jenkins_build_pipeline_duration_seconds": BUILD_PIPELINE_DURATION_SECONDS,
}


class Sample(NamedTuple):
    """One gauge observation: metric name, label values in declared order, value."""

    metric: str
    labels: Sequence[str]
    value: float


# ------------------------------------------------------------------
# Publishing
# ------------------------------------------------------------------

def reset_all() -> None:
    """Drop every labelled series from the catalogue."""
    for gauge in CATALOGUE.values():
        gauge.clear()


def publish(samples: Iterable[Sample]) -> int:
    """
    Replace the published snapshot with `samples`.

    Every series is cleared first, so labels that do not appear in `samples`
    vanish.  Returns the number of samples set.
    """
    samples = list(samples)
    for sample in samples:
        if sample.metric not in CATALOGUE:
            raise KeyError(f"unknown metric: {sample.metric}")

    reset_all()
    for sample in samples:
        CATALOGUE[sample.metric].labels(*sample.labels).set(sample.value)

    logger.debug("metrics_published", samples=len(samples))
    return len(samples)
