# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
from dataclasses import dataclass, field
from typing import (
    Callable,
    Collection,
    List,
    Literal,
    Mapping,
    Protocol,
    runtime_checkable,
)

import click
from typeguard import typechecked
from volscope.exporters import registry

from volscope.monitoring.click import collection_options, volscope_command
from volscope.monitoring.sink.protocol import (
    DataIdentifier,
    DataType,
    SinkAdditionalParams,
    SinkImpl,
)
from volscope.monitoring.sink.utils import Factory
from volscope.monitoring.storage import StorageCliClient, StorageClient
from volscope.monitoring.utils.monitor import run_collection
from volscope.schemas.storage.volume import VolumeInfo

LOGGER_NAME = "volumes"


@runtime_checkable
class CliObject(Protocol):
    @property
    def registry(self) -> Mapping[str, Factory[SinkImpl]]: ...

    def storage_client(self, mountinfo_path: str, label_dir: str) -> StorageClient: ...


@dataclass
class CliObjectImpl:
    registry: Mapping[str, Factory[SinkImpl]] = field(default_factory=lambda: registry)

    def storage_client(self, mountinfo_path: str, label_dir: str) -> StorageClient:
        return StorageCliClient(mountinfo_path=mountinfo_path, label_dir=label_dir)


# construct at module-scope because printing sink documentation relies on the object
_default_obj: CliObject = CliObjectImpl()


def collect_volumes(
    client: StorageClient,
) -> Callable[[logging.Logger], List[VolumeInfo]]:
    def _collect(logger: logging.Logger) -> List[VolumeInfo]:
        volumes = client.mounted_volumes()
        for volume in volumes:
            logger.debug(
                "%s: %s (%s) label=%r valid=%s",
                volume.root_path,
                volume.device,
                volume.file_system_type,
                volume.name,
                volume.valid,
            )
        return volumes

    return _collect


@volscope_command(context_settings={"obj": _default_obj})
@collection_options
@click.pass_obj
@typechecked
def main(
    obj: CliObject,
    mountinfo_path: str,
    label_dir: str,
    sink: str,
    sink_opts: Collection[str],
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    log_folder: str,
    stdout: bool,
) -> None:
    """
    Lists the mounted volumes with their capacity, usage and label, and sends them to
    the sink.
    """
    run_collection(
        name=LOGGER_NAME,
        log_folder=log_folder,
        stdout=stdout,
        log_level=log_level,
        collect=collect_volumes(obj.storage_client(mountinfo_path, label_dir)),
        additional_params=SinkAdditionalParams(
            data_type=DataType.LOG, data_identifier=DataIdentifier.VOLUMES
        ),
        sink=sink,
        sink_opts=sink_opts,
        registry=obj.registry,
    )
