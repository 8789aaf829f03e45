#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Logging and sink plumbing shared by the commands."""
from __future__ import annotations

import inspect
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from typing import (
    Callable,
    Collection,
    Iterable,
    Literal,
    Mapping,
    Optional,
    Tuple,
    TYPE_CHECKING,
)

import click
from omegaconf import OmegaConf as oc
from volscope.monitoring.sink.protocol import SinkAdditionalParams, SinkImpl
from volscope.monitoring.sink.utils import (
    explain_sink_init_error,
    Factory,
    write_to_sink,
)

if TYPE_CHECKING:
    from _typeshed import DataclassInstance

# library modules log under this name, so one handler on it collects everything
ROOT_LOGGER_NAME = "volscope"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def init_logger(
    logger_name: str,
    log_dir: str,
    log_name: str,
    log_formatter: Optional[logging.Formatter] = logging.Formatter(
        "[%(asctime)s] - [%(levelname)s] - [%(name)s] - %(message)s"
    ),
    log_level: int = logging.INFO,
    max_bytes: int = 1024 * 1024,
    backup_count: int = 2,
    log_stdout: bool = False,
    log_to_stderr: bool = False,
) -> Tuple[logging.Logger, logging.Handler]:
    """Set up logging for a command.

    Logs are stored at: {log_dir}/{log_name}
    unless `log_stdout` is set, in which case they go to stdout, or to stderr
    when `log_to_stderr` is also set.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    handler: logging.Handler
    if log_stdout:
        handler = logging.StreamHandler(sys.stderr if log_to_stderr else sys.stdout)
    else:
        file_path = os.path.join(log_dir, log_name)
        os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)
        handler = RotatingFileHandler(
            file_path, mode="a", maxBytes=max_bytes, backupCount=backup_count
        )

    if log_formatter:
        handler.setFormatter(log_formatter)
    logger.addHandler(handler)

    return logger, handler


def make_sink(
    sink: str,
    sink_opts: Collection[str],
    registry: Mapping[str, Factory[SinkImpl]],
) -> SinkImpl:
    try:
        sink_factory = registry[sink]
    except KeyError:
        raise click.UsageError(
            f"Sink '{sink}' could not be found. Here are the sinks that are registered:\n\t{list(registry.keys())}"
        )
    sink_kwargs = oc.to_container(oc.from_dotlist(list(sink_opts)))
    assert isinstance(sink_kwargs, dict)
    try:
        sink_impl = sink_factory(**sink_kwargs)
    except TypeError as e:
        explanation = explain_sink_init_error(e, sink, sink_factory, sink_kwargs)
        if explanation is None:
            raise
        raise click.UsageError(str(explanation)) from e

    if not isinstance(sink_impl, expected_proto := SinkImpl):
        sink_module = inspect.getmodule(sink_impl)
        raise click.ClickException(
            f"Sink '{sink}' defined in\n"
            f"\t{getattr(sink_module, '__name__', sink_module)}\n"
            f"does not appear to implement {expected_proto.__name__}"
        )
    return sink_impl


def run_collection(
    name: str,
    log_folder: str,
    stdout: bool,
    log_level: LogLevel,
    collect: Callable[[logging.Logger], Iterable[DataclassInstance]],
    additional_params: SinkAdditionalParams,
    sink: str,
    sink_opts: Collection[str],
    registry: Mapping[str, Factory[SinkImpl]],
    unixtime: Callable[[], float] = time.time,
) -> None:
    """Take one snapshot with `collect` and write it to `sink`."""
    logger, handler = init_logger(
        logger_name=ROOT_LOGGER_NAME,
        log_dir=os.path.join(log_folder, name + "_logs"),
        log_name=name + ".log",
        log_stdout=stdout,
        # the stdout sink owns stdout
        log_to_stderr=(sink == "stdout"),
        log_level=getattr(logging, log_level),
    )
    try:
        sink_impl = make_sink(sink, sink_opts, registry)
        logger.debug("will log data to %s", sink)

        log_time = int(unixtime())
        records = list(collect(logger))
        logger.debug("collected %d records for %s", len(records), name)

        write_to_sink(
            write=sink_impl.write,
            sink=sink,
            records=records,
            verbose=(getattr(logging, log_level) == logging.DEBUG),
            log_time=log_time,
            additional_params=additional_params,
        )
        logger.debug("succeeded writing %s data to sink %s", name, sink)
    finally:
        logger.removeHandler(handler)
        handler.close()
