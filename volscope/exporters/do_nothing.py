# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from volscope.exporters import register
from volscope.monitoring.sink.protocol import SinkAdditionalParams
from volscope.schemas.log import Log


@register("do_nothing")
class DoNothing:
    """Discard the records, e.g. to only keep the command's log."""

    def write(self, data: Log, additional_params: SinkAdditionalParams) -> None:
        pass
