# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import os
import stat as stat_module
from dataclasses import dataclass, field
from typing import Callable, Optional

from volscope.schemas.storage.device import DeviceId

logger = logging.getLogger(__name__)

StatFn = Callable[[str], os.stat_result]


def retrieve_device_id(
    device: str,
    device_id: Optional[DeviceId] = None,
    *,
    stat: StatFn = os.stat,
) -> Optional[DeviceId]:
    """Get the authoritative identity of a mounted device.

    A non-anonymous `device_id` from the mount table is trusted. An anonymous one
    (major 0, as btrfs uses for every subvolume including the root) says nothing about
    the block device, so `device` is stat()ed and its raw device number is used instead.

    Returns `None` when the identity cannot be determined: `device` is relative or "/",
    is not a block device, or cannot be stat()ed.
    """
    if device_id is not None and not device_id.is_anonymous:
        return device_id

    if len(device) < 2 or not device.startswith("/"):
        return None

    try:
        st = stat(device)
    except OSError:
        logger.debug("Could not stat device %s", device, exc_info=True)
        return None
    if not stat_module.S_ISBLK(st.st_mode) or st.st_rdev == 0:
        return None
    return DeviceId.from_dev(st.st_rdev)


def device_id_for_path(path: str, *, stat: StatFn = os.stat) -> Optional[DeviceId]:
    """The device of the filesystem containing `path`, according to stat(2)."""
    try:
        return DeviceId.from_dev(stat(path).st_dev)
    except OSError:
        logger.debug("Could not stat %s", path, exc_info=True)
        return None


@dataclass
class DeviceIdentityResolver:
    stat: StatFn = field(default=os.stat)

    def resolve(
        self, device: str, device_id: Optional[DeviceId] = None
    ) -> Optional[DeviceId]:
        return retrieve_device_id(device, device_id, stat=self.stat)

    def for_path(self, path: str) -> Optional[DeviceId]:
        return device_id_for_path(path, stat=self.stat)
