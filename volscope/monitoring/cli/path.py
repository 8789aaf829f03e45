# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
from typing import Callable, Collection, List, Literal

import click
from typeguard import typechecked

from volscope.monitoring.cli.volumes import _default_obj, CliObject
from volscope.monitoring.click import collection_options, volscope_command
from volscope.monitoring.sink.protocol import (
    DataIdentifier,
    DataType,
    SinkAdditionalParams,
)
from volscope.monitoring.storage import StorageClient
from volscope.monitoring.utils.monitor import run_collection
from volscope.schemas.storage.volume import VolumeInfo

LOGGER_NAME = "path"


def collect_path(
    client: StorageClient, path: str
) -> Callable[[logging.Logger], List[VolumeInfo]]:
    def _collect(logger: logging.Logger) -> List[VolumeInfo]:
        volume = client.volume_for_path(path)
        if not volume.ready:
            logger.warning("Could not find the volume backing %s", path)
        return [volume]

    return _collect


@volscope_command(context_settings={"obj": _default_obj})
@click.argument("path")
@collection_options
@click.pass_obj
@typechecked
def main(
    obj: CliObject,
    path: str,
    mountinfo_path: str,
    label_dir: str,
    sink: str,
    sink_opts: Collection[str],
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    log_folder: str,
    stdout: bool,
) -> None:
    """
    Finds the volume which PATH lives on and sends it to the sink.
    """
    if not path:
        raise click.BadParameter("must not be empty", param_hint="PATH")
    run_collection(
        name=LOGGER_NAME,
        log_folder=log_folder,
        stdout=stdout,
        log_level=log_level,
        collect=collect_path(obj.storage_client(mountinfo_path, label_dir), path),
        additional_params=SinkAdditionalParams(
            data_type=DataType.LOG, data_identifier=DataIdentifier.PATH
        ),
        sink=sink,
        sink_opts=sink_opts,
        registry=obj.registry,
    )
