"""
Unit tests for src/settings.py

Config files are written to pytest's tmp_path; nothing outside it is read.
"""

import pytest

from settings import (
    DEFAULT_PORT,
    DEFAULT_UPDATE_INTERVAL,
    ConfigError,
    load_settings,
    parse_settings,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

FULL_CONFIG = """
[Jenkins]
URL = "https://jenkins.example.com/"
User = "bot"
Password = "secret"
Jobs = ["build-app", "team/deploy"]
UpdateInterval = 600

[Exporter]
Address = "127.0.0.1"
Port = 9200
"""


def _write(tmp_path, text):
    path = tmp_path / "config.toml"
    path.write_text(text)
    return path


@pytest.fixture(autouse=True)
def _no_password_override(monkeypatch):
    monkeypatch.delenv("JENKINS_PASSWORD", raising=False)


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------

def test_loads_full_config(tmp_path):
    s = load_settings(_write(tmp_path, FULL_CONFIG))

    assert s.jenkins.url == "https://jenkins.example.com/"
    assert s.jenkins.user == "bot"
    assert s.jenkins.password == "secret"
    assert s.jenkins.jobs == ("build-app", "team/deploy")
    assert s.jenkins.update_interval == 600
    assert s.exporter.address == "127.0.0.1"
    assert s.exporter.port == 9200


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "absent.toml")


def test_invalid_toml_raises(tmp_path):
    with pytest.raises(ConfigError, match="unable to parse"):
        load_settings(_write(tmp_path, "[Jenkins\nURL = "))


def test_password_not_in_repr(tmp_path):
    s = load_settings(_write(tmp_path, FULL_CONFIG))
    assert "secret" not in repr(s)


# ---------------------------------------------------------------------------
# Update interval default
# ---------------------------------------------------------------------------

def test_unset_interval_defaults_to_1800():
    s = parse_settings({"Jenkins": {"URL": "http://ci"}})
    assert s.jenkins.update_interval == DEFAULT_UPDATE_INTERVAL == 1800


@pytest.mark.parametrize("value", [0, -5])
def test_non_positive_interval_defaults_to_1800(value):
    s = parse_settings({"Jenkins": {"URL": "http://ci", "UpdateInterval": value}})
    assert s.jenkins.update_interval == 1800


def test_non_integer_interval_rejected():
    with pytest.raises(ConfigError):
        parse_settings({"Jenkins": {"URL": "http://ci", "UpdateInterval": "600"}})


# ---------------------------------------------------------------------------
# parse_settings
# ---------------------------------------------------------------------------

def test_keys_are_case_insensitive():
    s = parse_settings({"jenkins": {"url": "http://ci", "jobs": ["a"], "update_interval": 30}})
    assert s.jenkins.url == "http://ci"
    assert s.jenkins.jobs == ("a",)
    assert s.jenkins.update_interval == 30


def test_missing_jenkins_section():
    with pytest.raises(ConfigError, match="Jenkins"):
        parse_settings({})


def test_missing_url():
    with pytest.raises(ConfigError, match="URL"):
        parse_settings({"Jenkins": {"Jobs": ["a"]}})


def test_jobs_must_be_list_of_strings():
    with pytest.raises(ConfigError, match="Jobs"):
        parse_settings({"Jenkins": {"URL": "http://ci", "Jobs": "build-app"}})


def test_blank_job_names_dropped():
    s = parse_settings({"Jenkins": {"URL": "http://ci", "Jobs": ["a", " ", ""]}})
    assert s.jenkins.jobs == ("a",)


def test_exporter_defaults():
    s = parse_settings({"Jenkins": {"URL": "http://ci"}})
    assert s.exporter.address == "0.0.0.0"
    assert s.exporter.port == DEFAULT_PORT == 9118


def test_tls_verification_off_by_default():
    s = parse_settings({"Jenkins": {"URL": "http://ci"}})
    assert s.jenkins.verify_tls is False


def test_tls_verification_can_be_enabled():
    s = parse_settings({"Jenkins": {"URL": "http://ci", "InsecureSkipVerify": False}})
    assert s.jenkins.verify_tls is True


def test_password_env_override(monkeypatch):
    monkeypatch.setenv("JENKINS_PASSWORD", "from-env")
    s = parse_settings({"Jenkins": {"URL": "http://ci", "Password": "from-file"}})
    assert s.jenkins.password == "from-env"
