"""Start/stop orchestration: download, unpack and launch a Kafka instance."""

from __future__ import annotations

import logging
from pathlib import Path

from .artifacts import instance_dir, instance_name
from .constants import HarnessSettings
from .download import ensure_artifact
from .errors import KafkaHarnessError, UnpackError
from .manager import KafkaInstance, KafkaManager
from .unpacker import TarUnpacker


def unpack_instance(archive: Path, settings: HarnessSettings, logger: logging.Logger) -> KafkaInstance:
    """Unpack the distribution into the build directory and return the instance."""
    target = instance_dir(settings.build_dir)
    logger.debug("Unpacking kafka from %s into %s", archive, target)
    try:
        TarUnpacker(logger).unpack(archive, target, True)
    except UnpackError as exc:
        raise KafkaHarnessError(f"Unable to unpack kafka from {archive} into {target}") from exc
    return KafkaInstance.from_path(target / instance_name(settings.scala_version, settings.kafka_version))


def create_manager(instance: KafkaInstance, settings: HarnessSettings, logger: logging.Logger) -> KafkaManager:
    return KafkaManager(
        instance,
        settings.state_dir,
        logger,
        startup_timeout=settings.startup_timeout,
        shutdown_timeout=settings.shutdown_timeout,
    )


def start(settings: HarnessSettings, logger: logging.Logger) -> KafkaInstance:
    """Fetch, unpack and start ZooKeeper followed by the Kafka broker."""
    archive = ensure_artifact(settings, logger)
    instance = unpack_instance(archive, settings, logger)
    instance.validate()

    manager = create_manager(instance, settings, logger)
    manager.start_zookeeper(settings.zookeeper_port)
    manager.start_kafka(settings.broker_port)
    return instance


def stop(settings: HarnessSettings, logger: logging.Logger) -> None:
    """Stop the broker, then ZooKeeper. Missing processes are not an error."""
    instance = KafkaInstance.from_path(
        instance_dir(settings.build_dir) / instance_name(settings.scala_version, settings.kafka_version)
    )
    manager = create_manager(instance, settings, logger)
    manager.stop_kafka()
    manager.stop_zookeeper()
