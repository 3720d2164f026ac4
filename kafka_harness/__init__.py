"""Kafka harness - fetch, unpack and run Kafka for integration tests.

Provides:
* A streaming tar/tar.gz unpacker preserving POSIX permission bits
* Distribution naming and download helpers
* ZooKeeper/Kafka process start/stop with PID files
* Thin CLI wrapper (`kafka-harness`)
"""

from .errors import KafkaHarnessError, UnpackError  # noqa: F401
from .logging_utils import configure_logging  # noqa: F401
from .posix_permissions import PosixPermission, to_mode, to_permission_set  # noqa: F401
from .unpacker import TarUnpacker, unpack  # noqa: F401

__version__ = "1.0.0"

__all__ = [
	"__version__",
	"configure_logging",
	"KafkaHarnessError",
	"UnpackError",
	"PosixPermission",
	"to_mode",
	"to_permission_set",
	"TarUnpacker",
	"unpack",
]
