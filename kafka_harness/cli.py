"""
Command Line Interface for the Kafka harness.

Provides commands to unpack distributions and to start/stop a local
Kafka instance around an integration-test phase.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .artifacts import is_gzipped_archive
from .constants import ExitCodes, HarnessSettings
from .download import ensure_artifact
from .errors import (
    DownloadError,
    InstanceError,
    KafkaHarnessError,
    ProcessLaunchError,
    UnpackError,
)
from .harness import start, stop
from .logging_utils import configure_logging, get_logger
from .unpacker import TarUnpacker


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: Exception) -> int:
    """Translate harness exceptions to exit codes."""
    if isinstance(exc, UnpackError):
        return ExitCodes.UNPACK_FAILED
    if isinstance(exc, DownloadError):
        return ExitCodes.DOWNLOAD_FAILED
    if isinstance(exc, InstanceError):
        return ExitCodes.INSTANCE_INVALID
    if isinstance(exc, ProcessLaunchError):
        return ExitCodes.LAUNCH_FAILED
    if isinstance(exc, ValueError):
        return ExitCodes.INVALID_ARGUMENT
    if isinstance(exc, KafkaHarnessError) and isinstance(exc.__cause__, UnpackError):
        return ExitCodes.UNPACK_FAILED
    return ExitCodes.LAUNCH_FAILED


class UnpackCommand:
    """Extracts a tar or tar.gz archive preserving permission bits."""

    @staticmethod
    def add_parser(subparsers) -> None:
        parser = subparsers.add_parser('unpack', help='Unpack a tar/tar.gz archive')
        parser.add_argument('archive', type=Path, help='Archive to unpack')
        parser.add_argument('destination', type=Path, help='Directory to unpack into')
        gzip_group = parser.add_mutually_exclusive_group()
        gzip_group.add_argument('--gzip', dest='gzipped', action='store_const', const=True,
                                help='Treat the archive as gzip compressed')
        gzip_group.add_argument('--no-gzip', dest='gzipped', action='store_const', const=False,
                                help='Treat the archive as an uncompressed tar')
        parser.set_defaults(func=UnpackCommand.execute, gzipped=None)

    @staticmethod
    def execute(args) -> None:
        gzipped = args.gzipped
        if gzipped is None:
            gzipped = is_gzipped_archive(args.archive)
        TarUnpacker(get_logger(__name__)).unpack(args.archive, args.destination, gzipped)
        print(f"Unpacked {args.archive} into {args.destination}")


class DownloadCommand:
    """Downloads the configured distribution into the artifact cache."""

    @staticmethod
    def add_parser(subparsers) -> None:
        parser = subparsers.add_parser('download', help='Download the configured Kafka distribution')
        parser.set_defaults(func=DownloadCommand.execute)

    @staticmethod
    def execute(_args) -> None:
        path = ensure_artifact(HarnessSettings.from_env(), get_logger(__name__))
        print(path)


class StartCommand:
    """Downloads, unpacks and starts ZooKeeper and Kafka."""

    @staticmethod
    def add_parser(subparsers) -> None:
        parser = subparsers.add_parser('start', help='Start ZooKeeper and Kafka for integration tests')
        parser.set_defaults(func=StartCommand.execute)

    @staticmethod
    def execute(_args) -> None:
        instance = start(HarnessSettings.from_env(), get_logger(__name__))
        print(f"Kafka running from {instance.path}")


class StopCommand:
    """Stops a previously started Kafka and ZooKeeper."""

    @staticmethod
    def add_parser(subparsers) -> None:
        parser = subparsers.add_parser('stop', help='Stop Kafka and ZooKeeper')
        parser.set_defaults(func=StopCommand.execute)

    @staticmethod
    def execute(_args) -> None:
        stop(HarnessSettings.from_env(), get_logger(__name__))


COMMANDS = (
    UnpackCommand,
    DownloadCommand,
    StartCommand,
    StopCommand,
)


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='kafka-harness',
        description='Fetch, unpack and run a Kafka distribution for integration tests'
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    for command in COMMANDS:
        command.add_parser(subparsers)
    return parser


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
    """
    configure_logging()
    parser = create_parser()

    if args is None:
        args = sys.argv[1:]

    if not args:
        parser.print_help()
        sys.exit(ExitCodes.OK)

    parsed_args = parser.parse_args(args)
    if not hasattr(parsed_args, 'func'):
        parser.print_help()
        sys.exit(ExitCodes.OK)

    try:
        parsed_args.func(parsed_args)
    except (KafkaHarnessError, ValueError) as exc:
        get_logger(__name__).debug("Command %s failed", parsed_args.command, exc_info=True)
        exit_with_error(str(exc), map_exception_to_exit_code(exc))


if __name__ == '__main__':
    main()
