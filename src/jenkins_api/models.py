"""
Value objects over the raw Jenkins JSON payloads.

Each wrapper keeps the decoded dict and exposes the handful of fields the
exporter reads.  Nothing here talks to the network.
"""

from typing import Any, Dict, List, Optional

STATUS_SUCCESS = "SUCCESS"
STATUS_FAILURE = "FAILURE"
STATUS_PASSED = "PASSED"


class Job:
    """A named CI job (`/job/<name>/api/json`)."""

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    @property
    def name(self) -> str:
        return self.raw.get("name", "")

    @property
    def last_build_number(self) -> Optional[int]:
        return _build_ref(self.raw.get("lastBuild"))

    @property
    def last_completed_build_number(self) -> Optional[int]:
        return _build_ref(self.raw.get("lastCompletedBuild"))

    def __repr__(self) -> str:
        return f"Job(name={self.name!r})"


class Build:
    """One execution of a job (`/job/<name>/<number>/api/json`)."""

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    @property
    def number(self) -> int:
        return int(self.raw.get("number", 0))

    @property
    def duration_ms(self) -> float:
        return float(self.raw.get("duration") or 0)

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000

    @property
    def timestamp_ms(self) -> int:
        return int(self.raw.get("timestamp") or 0)

    @property
    def timestamp_seconds(self) -> int:
        return self.timestamp_ms // 1000

    @property
    def result(self) -> Optional[str]:
        return self.raw.get("result")

    @property
    def building(self) -> bool:
        return bool(self.raw.get("building", False))

    @property
    def is_good(self) -> bool:
        return not self.building and self.result == STATUS_SUCCESS

    def __repr__(self) -> str:
        return f"Build(number={self.number!r}, result={self.result!r}, building={self.building!r})"


class PipelineStage:
    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    @property
    def id(self) -> str:
        return str(self.raw.get("id", ""))

    @property
    def name(self) -> str:
        return self.raw.get("name", "")

    @property
    def status(self) -> str:
        return self.raw.get("status", "")

    @property
    def duration_ms(self) -> int:
        return int(self.raw.get("durationMillis") or 0)

    @property
    def duration_seconds(self) -> int:
        return self.duration_ms // 1000


class PipelineRun:
    """Workflow API description of a pipeline build (`wfapi/describe`)."""

    def __init__(self, raw: Optional[Dict[str, Any]] = None):
        self.raw = raw or {}

    @property
    def stages(self) -> List[PipelineStage]:
        return [PipelineStage(s) for s in self.raw.get("stages") or []]


class TestCase:
    __test__ = False  # not a pytest class

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    @property
    def name(self) -> str:
        return self.raw.get("name", "")

    @property
    def status(self) -> str:
        return self.raw.get("status", "")

    @property
    def skipped(self) -> bool:
        return bool(self.raw.get("skipped", False))

    @property
    def failed_since(self) -> int:
        return int(self.raw.get("failedSince") or 0)

    @property
    def age(self) -> int:
        return int(self.raw.get("age") or 0)

    @property
    def is_failing(self) -> bool:
        """True for failed and regressed cases that were not skipped."""
        return not self.skipped and self.status != STATUS_PASSED


class TestSuite:
    __test__ = False

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    @property
    def name(self) -> str:
        return self.raw.get("name", "")

    @property
    def cases(self) -> List[TestCase]:
        return [TestCase(c) for c in self.raw.get("cases") or []]


class TestResult:
    """Aggregated JUnit report of a build (`testReport/api/json`)."""

    __test__ = False

    def __init__(self, raw: Optional[Dict[str, Any]] = None):
        self.raw = raw or {}

    @classmethod
    def empty(cls) -> "TestResult":
        return cls({})

    @property
    def fail_count(self) -> int:
        return int(self.raw.get("failCount") or 0)

    @property
    def skip_count(self) -> int:
        return int(self.raw.get("skipCount") or 0)

    @property
    def pass_count(self) -> int:
        return int(self.raw.get("passCount") or 0)

    @property
    def suites(self) -> List[TestSuite]:
        return [TestSuite(s) for s in self.raw.get("suites") or []]


def _build_ref(ref: Optional[Dict[str, Any]]) -> Optional[int]:
    if not ref or ref.get("number") is None:
        return None
    return int(ref["number"])
