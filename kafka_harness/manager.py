"""Lifecycle of the ZooKeeper and Kafka processes of an unpacked instance."""

from __future__ import annotations

import logging
import os
import signal
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .constants import KAFKA_PID_FILE, ZOOKEEPER_PID_FILE
from .errors import InstanceError, ProcessLaunchError

PORT_POLL_INTERVAL = 0.5
STOP_POLL_INTERVAL = 0.5


@dataclass(frozen=True)
class KafkaInstance:
    """An unpacked Kafka distribution directory."""

    path: Path

    @classmethod
    def from_path(cls, path: Path) -> "KafkaInstance":
        return cls(Path(path))

    @property
    def bin_dir(self) -> Path:
        return self.path / "bin"

    @property
    def config_dir(self) -> Path:
        return self.path / "config"

    @property
    def logs_dir(self) -> Path:
        return self.path / "logs"

    @property
    def zookeeper_start_script(self) -> Path:
        return self.bin_dir / "zookeeper-server-start.sh"

    @property
    def kafka_start_script(self) -> Path:
        return self.bin_dir / "kafka-server-start.sh"

    @property
    def zookeeper_config(self) -> Path:
        return self.config_dir / "zookeeper.properties"

    @property
    def server_config(self) -> Path:
        return self.config_dir / "server.properties"

    def validate(self) -> None:
        """Raise InstanceError unless the launcher scripts are usable."""
        if not self.path.is_dir():
            raise InstanceError(f"Kafka instance directory {self.path} does not exist")
        for script in (self.zookeeper_start_script, self.kafka_start_script):
            if not script.is_file():
                raise InstanceError(f"Launcher script {script} is missing")
            if not os.access(script, os.X_OK):
                raise InstanceError(f"Launcher script {script} is not executable")
        for config in (self.zookeeper_config, self.server_config):
            if not config.is_file():
                raise InstanceError(f"Configuration file {config} is missing")


def read_pid_file(path: Path) -> Optional[int]:
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not content:
        return None
    try:
        return int(content)
    except ValueError:
        return None


def is_process_alive(pid: Optional[int]) -> bool:
    if pid is None:
        return False
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


def wait_for_port(
    process: subprocess.Popen,
    host: str,
    port: int,
    timeout: float,
    service: str,
) -> None:
    """Block until ``host:port`` accepts TCP connections."""
    deadline = time.time() + max(timeout, 0)
    while True:
        code = process.poll()
        if code is not None:
            raise ProcessLaunchError(f"{service} exited with code {code} during startup")
        try:
            with socket.create_connection((host, port), timeout=1):
                return
        except OSError:
            pass
        if time.time() >= deadline:
            raise ProcessLaunchError(f"{service} did not open port {port} within {timeout}s")
        time.sleep(PORT_POLL_INTERVAL)


class KafkaManager:
    """Starts and stops the servers of a single instance.

    PID files live in ``state_dir`` so that a later, separate invocation can
    stop what an earlier one started.
    """

    def __init__(
        self,
        instance: KafkaInstance,
        state_dir: Path,
        logger: logging.Logger,
        startup_timeout: float = 30.0,
        shutdown_timeout: float = 30.0,
        host: str = "127.0.0.1",
    ) -> None:
        self.instance = instance
        self.state_dir = Path(state_dir)
        self.logger = logger
        self.startup_timeout = startup_timeout
        self.shutdown_timeout = shutdown_timeout
        self.host = host

    def start_zookeeper(self, port: int) -> int:
        command = [str(self.instance.zookeeper_start_script), str(self.instance.zookeeper_config)]
        return self._start("zookeeper", command, ZOOKEEPER_PID_FILE, port)

    def start_kafka(self, port: int) -> int:
        command = [str(self.instance.kafka_start_script), str(self.instance.server_config)]
        return self._start("kafka", command, KAFKA_PID_FILE, port)

    def stop_kafka(self) -> bool:
        return self._stop("kafka", KAFKA_PID_FILE)

    def stop_zookeeper(self) -> bool:
        return self._stop("zookeeper", ZOOKEEPER_PID_FILE)

    def _start(self, service: str, command: List[str], pid_name: str, port: int) -> int:
        pid_path = self.state_dir / pid_name
        existing = read_pid_file(pid_path)
        if is_process_alive(existing):
            self.logger.info("%s already running with PID %s.", service, existing)
            return existing

        log_path = self.state_dir / f"{service}.out"
        self.logger.info("Starting %s: %s", service, " ".join(command))
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with log_path.open("ab") as log_handle:
                process = subprocess.Popen(
                    command,
                    cwd=str(self.instance.path),
                    stdin=subprocess.DEVNULL,
                    stdout=log_handle,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
        except OSError as exc:
            raise ProcessLaunchError(f"Unable to start {service}: {exc}") from exc

        try:
            try:
                pid_path.write_text(f"{process.pid}\n", encoding="utf-8")
            except OSError as exc:
                raise ProcessLaunchError(f"Unable to record {service} PID in {pid_path}: {exc}") from exc
            wait_for_port(process, self.host, port, self.startup_timeout, service)
        except ProcessLaunchError:
            self.logger.error("%s failed to start; see %s", service, log_path)
            if process.poll() is None:
                process.kill()
                process.wait()
            pid_path.unlink(missing_ok=True)
            raise

        self.logger.info("%s started (PID %s, port %s).", service, process.pid, port)
        return process.pid

    def _stop(self, service: str, pid_name: str) -> bool:
        pid_path = self.state_dir / pid_name
        pid = read_pid_file(pid_path)
        if pid is None:
            self.logger.info("%s is not running (no PID file).", service)
            return False
        if not is_process_alive(pid):
            self.logger.info("%s PID %s is not alive; removing stale PID file.", service, pid)
            pid_path.unlink(missing_ok=True)
            return False

        self.logger.info("Sending SIGTERM to %s PID %s", service, pid)
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            pid_path.unlink(missing_ok=True)
            return True
        except OSError as exc:
            raise ProcessLaunchError(f"Unable to signal {service} PID {pid}: {exc}") from exc

        deadline = time.time() + max(self.shutdown_timeout, 1)
        while is_process_alive(pid) and time.time() < deadline:
            time.sleep(STOP_POLL_INTERVAL)

        if is_process_alive(pid):
            self.logger.warning(
                "%s did not stop within %ss; sending SIGKILL to PID %s",
                service,
                self.shutdown_timeout,
                pid,
            )
            try:
                os.kill(pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
        pid_path.unlink(missing_ok=True)
        return True
