# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import json
import os
from typing import Callable, Tuple

from volscope.exporters import register

from volscope.monitoring.dataclass_utils import asdict_without_none
from volscope.monitoring.sink.protocol import SinkAdditionalParams

from volscope.monitoring.utils.monitor import init_logger
from volscope.schemas.log import Log

split_path: Callable[[str], Tuple[str, str]] = lambda path: (
    os.path.dirname(path),
    os.path.basename(path),
)


@register("file")
class File:
    """Append data to a file, one JSON object per line."""

    def __init__(self, *, file_path: str):
        file_directory, file_name = split_path(file_path)
        self.logger, _ = init_logger(
            logger_name=__name__ + file_path,
            log_dir=file_directory,
            log_name=file_name,
            log_formatter=None,
        )
        # records must not end up in the command log
        self.logger.propagate = False

    def write(
        self,
        data: Log,
        additional_params: SinkAdditionalParams,
    ) -> None:
        for payload in data.message:
            self.logger.info(json.dumps({"ts": data.ts, **asdict_without_none(payload)}))
