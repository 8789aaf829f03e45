# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from dataclasses import dataclass
from enum import auto, Enum
from typing import Optional, Protocol, runtime_checkable

from volscope.schemas.log import Log


class DataType(Enum):
    LOG = auto()


class DataIdentifier(Enum):
    """Which command produced the records."""

    VOLUMES = auto()
    PATH = auto()
    GENERIC = auto()


@dataclass
class SinkAdditionalParams:
    data_type: Optional[DataType] = None
    data_identifier: Optional[DataIdentifier] = None


class SinkWrite(Protocol):
    def __call__(self, data: Log, additional_params: SinkAdditionalParams) -> None: ...


@runtime_checkable
class SinkImpl(Protocol):
    """Somewhere the records of one snapshot end up. Implementations live in
    `volscope.exporters` and are looked up by their registered name.
    """

    def write(
        self,
        data: Log,
        additional_params: SinkAdditionalParams,
    ) -> None: ...
