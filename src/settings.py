"""
Exporter configuration.

Read from a TOML file with a mandatory [Jenkins] table and an optional
[Exporter] table.  Keys are matched case-insensitively, so ``UpdateInterval``,
``updateinterval`` and ``update_interval`` all work.

    [Jenkins]
    URL = "https://jenkins.example.com"
    User = "bot"
    Password = "api-token"
    Jobs = ["build-app", "folder/deploy"]
    UpdateInterval = 600

    [Exporter]
    Port = 9118

JENKINS_PASSWORD in the environment wins over the Password key.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

import structlog

logger = structlog.get_logger()

DEFAULT_UPDATE_INTERVAL = 1800  # 30 mins
DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_PORT = 9118


class ConfigError(Exception):
    """Raised when the configuration file is missing or unusable."""


@dataclass(frozen=True)
class JenkinsSettings:
    url: str
    user: str = ""
    password: str = field(default="", repr=False)
    jobs: Tuple[str, ...] = ()
    update_interval: int = DEFAULT_UPDATE_INTERVAL
    verify_tls: bool = False


@dataclass(frozen=True)
class ExporterSettings:
    address: str = DEFAULT_ADDRESS
    port: int = DEFAULT_PORT


@dataclass(frozen=True)
class Settings:
    jenkins: JenkinsSettings
    exporter: ExporterSettings = ExporterSettings()


def load_settings(path) -> Settings:
    """Read and validate the TOML file at `path`."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(
            f"config file not found: {path} "
            "(pass -config <yourconfig> or create config.toml in the working directory)"
        )
    try:
        with path.open("rb") as fh:
            raw = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"unable to parse configuration file {path}: {exc}") from exc

    settings = parse_settings(raw)
    logger.debug("configuration_loaded", path=str(path), settings=repr(settings))
    return settings


def parse_settings(raw: Dict[str, Any]) -> Settings:
    """Build Settings from an already decoded TOML document."""
    tables = _normalise(raw)

    jenkins = _normalise(_table(tables, "jenkins"))
    url = jenkins.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("Jenkins.URL is required")

    password = os.getenv("JENKINS_PASSWORD") or _string(jenkins, "password")

    exporter = _normalise(_table(tables, "exporter", required=False))

    return Settings(
        jenkins=JenkinsSettings(
            url=url.strip(),
            user=_string(jenkins, "user"),
            password=password,
            jobs=tuple(_jobs(jenkins)),
            update_interval=_interval(jenkins),
            verify_tls=not _boolean(jenkins, "insecureskipverify", default=True),
        ),
        exporter=ExporterSettings(
            address=_string(exporter, "address") or DEFAULT_ADDRESS,
            port=_integer(exporter, "port", default=DEFAULT_PORT),
        ),
    )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _normalise(table: Dict[str, Any]) -> Dict[str, Any]:
    return {key.replace("_", "").lower(): value for key, value in table.items()}


def _table(tables: Dict[str, Any], name: str, required: bool = True) -> Dict[str, Any]:
    value = tables.get(name)
    if value is None:
        if required:
            raise ConfigError(f"missing [{name.capitalize()}] section")
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"[{name.capitalize()}] must be a table")
    return value


def _string(table: Dict[str, Any], key: str) -> str:
    value = table.get(key, "")
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string")
    return value


def _boolean(table: Dict[str, Any], key: str, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false")
    return value


def _integer(table: Dict[str, Any], key: str, default: int) -> int:
    value = table.get(key, default)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer")
    return value


def _jobs(table: Dict[str, Any]) -> List[str]:
    jobs = table.get("jobs", [])
    if not isinstance(jobs, list) or not all(isinstance(j, str) for j in jobs):
        raise ConfigError("Jenkins.Jobs must be a list of job names")
    return [j.strip() for j in jobs if j.strip()]


def _interval(table: Dict[str, Any]) -> int:
    interval = _integer(table, "updateinterval", default=0)
    if interval <= 0:
        return DEFAULT_UPDATE_INTERVAL
    return interval
