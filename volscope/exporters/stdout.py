# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging

from volscope.exporters import register

from volscope.monitoring.dataclass_utils import json_dumps_dataclass_list
from volscope.monitoring.sink.protocol import DataType, SinkAdditionalParams
from volscope.schemas.log import Log

logger = logging.getLogger(__name__)


@register("stdout")
class Stdout:
    """Write data to stdout as a JSON list."""

    def write(
        self,
        data: Log,
        additional_params: SinkAdditionalParams,
    ) -> None:
        if additional_params.data_type is not DataType.LOG:
            logger.error(
                f"Stdout writes require data_type to be {DataType.LOG}: {additional_params}"
            )
            return
        print(json_dumps_dataclass_list(data.message))
