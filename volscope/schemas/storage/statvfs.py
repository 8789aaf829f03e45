# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from dataclasses import dataclass


@dataclass(frozen=True)
class VolumeStats:
    bytes_total: int
    bytes_free: int
    bytes_available: int
    block_size: int
    read_only: bool
