# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from volscope.monitoring.device import DeviceIdentityResolver
from volscope.monitoring.mountinfo import (
    DEFAULT_MOUNTINFO_PATH,
    is_parent_of,
    MountFilter,
    read_mount_info,
)
from volscope.schemas.storage.device import DeviceId
from volscope.schemas.storage.mount import MountInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MountMatch:
    root_path: str
    device_id: DeviceId
    # None when there was no mount table to match against
    mount: Optional[MountInfo] = None


def canonical_path(path: str) -> Optional[str]:
    try:
        return os.path.realpath(path, strict=True)
    except OSError:
        return None


@dataclass
class MountResolver:
    """Finds the mount which currently backs a path."""

    mountinfo_path: str = DEFAULT_MOUNTINFO_PATH
    resolver: DeviceIdentityResolver = field(default_factory=DeviceIdentityResolver)
    canonicalize: Callable[[str], Optional[str]] = field(default=canonical_path)
    read_mounts: Callable[[str, MountFilter], List[MountInfo]] = field(
        default=read_mount_info
    )

    def resolve(self, path: str) -> Optional[MountMatch]:
        if not path:
            raise ValueError("Expected a non-empty path")

        canonical = self.canonicalize(path)
        if not canonical:
            logger.debug("Could not canonicalize %s", path)
            return None

        infos = self.read_mounts(self.mountinfo_path, MountFilter.ALL)
        if not infos:
            logger.debug("No mount information available, assuming / for %s", path)
            return MountMatch(root_path="/", device_id=DeviceId.NO_MOUNT_DATA)

        path_device_id = self.resolver.for_path(canonical)
        if path_device_id is None:
            return None

        # Linux allows mounting over non-empty directories, so walk the table from the
        # most recent mount: the first mount point containing the path is the topmost
        # one. The device check rules out paths that only look covered, e.g. after a
        # `mount --move`.
        for info in reversed(infos):
            # raw maj:min on purpose: st_dev of a btrfs path is the anonymous id too
            if info.device_id != path_device_id:
                continue
            if not is_parent_of(info.mount_point.as_posix(), canonical):
                continue
            return MountMatch(
                root_path=info.mount_point.as_posix(),
                device_id=info.device_id,
                mount=info,
            )
        logger.debug("No mount with device %s contains %s", path_device_id, canonical)
        return None
