# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from volscope.schemas.storage.statvfs import VolumeStats

logger = logging.getLogger(__name__)

# Bionic's statfs reports ST_RDONLY in f_flags, but some releases do not define it
ST_RDONLY: int = getattr(os, "ST_RDONLY", 1)


class VolumeStatter(Protocol):
    def stat(self, mount_point: str) -> Optional[VolumeStats]:
        """Get capacity and usage of the filesystem mounted at `mount_point`, or None if
        the filesystem could not be queried.
        """


def as_volume_stats(result: Any, read_only: bool) -> VolumeStats:
    fragment_size = result.f_frsize or result.f_bsize
    return VolumeStats(
        bytes_total=result.f_blocks * fragment_size,
        bytes_free=result.f_bfree * fragment_size,
        bytes_available=result.f_bavail * fragment_size,
        block_size=result.f_bsize,
        read_only=read_only,
    )


@dataclass
class StatvfsVolumeStatter:
    """statvfs(3), reporting flags in the `f_flag` field."""

    statvfs: Callable[[str], Any] = field(default=os.statvfs)

    def stat(self, mount_point: str) -> Optional[VolumeStats]:
        try:
            result = self.statvfs(mount_point)
        except OSError:
            logger.debug("statvfs failed for %s", mount_point, exc_info=True)
            return None
        return as_volume_stats(result, read_only=bool(result.f_flag & ST_RDONLY))


@dataclass
class StatfsVolumeStatter:
    """statfs(2) as used on Android. Bionic reports mount flags in `f_flags`; a
    binding without that field (such as `os.statvfs`) reports them in `f_flag`.
    """

    statfs: Callable[[str], Any] = field(default=os.statvfs)

    def stat(self, mount_point: str) -> Optional[VolumeStats]:
        try:
            result = self.statfs(mount_point)
        except OSError:
            logger.debug("statfs failed for %s", mount_point, exc_info=True)
            return None
        flags = getattr(result, "f_flags", None)
        if flags is None:
            flags = getattr(result, "f_flag", 0)
        read_only = bool(flags & ST_RDONLY)
        return as_volume_stats(result, read_only=read_only)


def make_volume_statter(platform: str = sys.platform) -> VolumeStatter:
    if platform == "android":
        return StatfsVolumeStatter()
    return StatvfsVolumeStatter()
