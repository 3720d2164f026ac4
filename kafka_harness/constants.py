"""Constants and settings helpers for the Kafka harness."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_KAFKA_VERSION = "0.8.2.1"
DEFAULT_SCALA_VERSION = "2.10"
DEFAULT_BUILD_DIR = "target"
DEFAULT_ARTIFACT_DIR = "~/.kafka-harness/artifacts"
DEFAULT_MIRROR_URL = "https://archive.apache.org/dist/kafka"

DEFAULT_ZOOKEEPER_PORT = 2181
DEFAULT_BROKER_PORT = 9092

INSTANCE_DIR_NAME = "kafka"
STATE_DIR_NAME = ".kafka-harness"
ZOOKEEPER_PID_FILE = "zookeeper.pid"
KAFKA_PID_FILE = "kafka.pid"


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    UNPACK_FAILED = 1
    DOWNLOAD_FAILED = 2
    INSTANCE_INVALID = 3
    LAUNCH_FAILED = 4
    INVALID_ARGUMENT = 5


def env_str(key: str, default: str) -> str:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_float(key: str, default: float) -> float:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class HarnessSettings:
    """Typed harness settings sourced from the environment."""

    kafka_version: str
    scala_version: str
    build_dir: Path
    artifact_dir: Path
    mirror_url: str
    download_timeout: float
    zookeeper_port: int
    broker_port: int
    startup_timeout: float
    shutdown_timeout: float

    @property
    def state_dir(self) -> Path:
        return self.build_dir / STATE_DIR_NAME

    @classmethod
    def from_env(cls) -> "HarnessSettings":
        return cls(
            kafka_version=env_str("KAFKA_VERSION", DEFAULT_KAFKA_VERSION),
            scala_version=env_str("KAFKA_SCALA_VERSION", DEFAULT_SCALA_VERSION),
            build_dir=Path(env_str("KAFKA_BUILD_DIR", DEFAULT_BUILD_DIR)),
            artifact_dir=Path(env_str("KAFKA_ARTIFACT_DIR", DEFAULT_ARTIFACT_DIR)).expanduser(),
            mirror_url=env_str("KAFKA_MIRROR_URL", DEFAULT_MIRROR_URL).rstrip("/"),
            download_timeout=env_float("KAFKA_DOWNLOAD_TIMEOUT", 30.0),
            zookeeper_port=env_int("KAFKA_ZOOKEEPER_PORT", DEFAULT_ZOOKEEPER_PORT),
            broker_port=env_int("KAFKA_BROKER_PORT", DEFAULT_BROKER_PORT),
            startup_timeout=env_float("KAFKA_STARTUP_TIMEOUT", 30.0),
            shutdown_timeout=env_float("KAFKA_SHUTDOWN_TIMEOUT", 30.0),
        )
