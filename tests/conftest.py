"""Shared fixtures for all test modules."""

from pathlib import Path
from typing import Any, Dict

import pytest
import sys

# Make src/ importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from settings import JenkinsSettings, Settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(jenkins=JenkinsSettings(
        url="https://jenkins.example.com",
        user="bot",
        password="secret",
        jobs=("build-app",),
        update_interval=60,
    ))


@pytest.fixture
def job_raw() -> Dict[str, Any]:
    return {
        "_class": "org.jenkinsci.plugins.workflow.job.WorkflowJob",
        "name": "build-app",
        "fullName": "build-app",
        "lastBuild": {"number": 43},
        "lastCompletedBuild": {"number": 42},
    }


@pytest.fixture
def completed_build_raw() -> Dict[str, Any]:
    return {
        "number": 42,
        "building": False,
        "result": "FAILURE",
        "duration": 125_999,
        "timestamp": 1_700_000_000_750,
    }


@pytest.fixture
def running_build_raw() -> Dict[str, Any]:
    return {
        "number": 43,
        "building": True,
        "result": None,
        "duration": 0,
        "timestamp": 1_700_000_600_000,
    }


@pytest.fixture
def test_report_raw() -> Dict[str, Any]:
    return {
        "failCount": 2,
        "skipCount": 1,
        "passCount": 10,
        "suites": [
            {
                "name": "com.acme.PaymentTest",
                "cases": [
                    {"name": "testRefund", "status": "REGRESSION", "skipped": False, "failedSince": 42, "age": 1},
                    {"name": "testCharge", "status": "PASSED", "skipped": False, "failedSince": 0, "age": 0},
                    {"name": "testLegacy", "status": "SKIPPED", "skipped": True, "failedSince": 0, "age": 0},
                ],
            },
            {
                "name": "com.acme.CheckoutTest",
                "cases": [
                    {"name": "testTimeout", "status": "FAILED", "skipped": False, "failedSince": 39, "age": 4},
                ],
            },
        ],
    }


@pytest.fixture
def completed_pipeline_raw() -> Dict[str, Any]:
    return {
        "id": "42",
        "status": "FAILED",
        "stages": [
            {"id": "6", "name": "Build", "status": "SUCCESS", "durationMillis": 61_500},
            {"id": "23", "name": "Test", "status": "FAILED", "durationMillis": 59_999},
        ],
    }


@pytest.fixture
def live_pipeline_raw() -> Dict[str, Any]:
    return {
        "id": "43",
        "status": "IN_PROGRESS",
        "stages": [
            {"id": "6", "name": "Build", "status": "SUCCESS", "durationMillis": 30_900},
            {"id": "23", "name": "Test", "status": "IN_PROGRESS", "durationMillis": 12_400},
            {"id": "101", "name": "Lint", "status": "NOT_EXECUTED", "durationMillis": 0},
        ],
    }
