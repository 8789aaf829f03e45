# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from dataclasses import dataclass
from typing import Optional

from volscope.schemas.storage.device import DeviceId


@dataclass(frozen=True)
class LabelRecord:
    label: str
    device_id: DeviceId


@dataclass(frozen=True)
class VolumeInfo:
    """A mounted volume as seen at the time of the query.

    `ready` means the device could be queried at all, `valid` that its statistics
    were retrieved. Numeric fields stay at zero when they were not.
    """

    root_path: str = ""
    device: str = ""
    file_system_type: str = ""
    subvolume: str = ""
    name: str = ""
    bytes_total: int = 0
    bytes_free: int = 0
    bytes_available: int = 0
    block_size: int = 0
    read_only: bool = False
    valid: bool = False
    ready: bool = False
    device_id: Optional[DeviceId] = None
