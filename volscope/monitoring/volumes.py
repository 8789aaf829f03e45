# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from volscope.monitoring.device import DeviceIdentityResolver
from volscope.monitoring.labels import DEFAULT_LABEL_DIR, LabelIndex, ListDirFn
from volscope.monitoring.mountinfo import (
    DEFAULT_MOUNTINFO_PATH,
    MountFilter,
    read_mount_info,
)
from volscope.monitoring.resolver import canonical_path, MountMatch, MountResolver
from volscope.monitoring.statvfs import make_volume_statter, VolumeStatter
from volscope.schemas.storage.device import DeviceId
from volscope.schemas.storage.mount import MountInfo
from volscope.schemas.storage.statvfs import VolumeStats
from volscope.schemas.storage.volume import VolumeInfo

logger = logging.getLogger(__name__)


def as_volume_info(
    root_path: str,
    device_id: Optional[DeviceId],
    mount: Optional[MountInfo],
    stats: Optional[VolumeStats],
    name: str = "",
) -> VolumeInfo:
    subvolume = ""
    if mount is not None and mount.root.as_posix() != "/":
        subvolume = mount.root.as_posix()
    numbers = {}
    if stats is not None:
        numbers = dict(
            bytes_total=stats.bytes_total,
            bytes_free=stats.bytes_free,
            bytes_available=stats.bytes_available,
            block_size=stats.block_size,
            read_only=stats.read_only,
        )
    return VolumeInfo(
        root_path=root_path,
        device=mount.mount_source if mount is not None else "",
        file_system_type=mount.filesystem_type if mount is not None else "",
        subvolume=subvolume,
        name=name,
        valid=stats is not None,
        ready=stats is not None,
        device_id=device_id,
        **numbers,
    )


@dataclass
class VolumeEnumerator:
    """Builds `VolumeInfo`s from the live mount table."""

    mountinfo_path: str = DEFAULT_MOUNTINFO_PATH
    label_dir: str = DEFAULT_LABEL_DIR
    resolver: DeviceIdentityResolver = field(default_factory=DeviceIdentityResolver)
    statter: VolumeStatter = field(default_factory=make_volume_statter)
    canonicalize: Callable[[str], Optional[str]] = field(default=canonical_path)
    listdir: ListDirFn = field(default=os.listdir)
    read_mounts: Callable[[str, MountFilter], List[MountInfo]] = field(
        default=read_mount_info
    )
    labels: LabelIndex = field(init=False)
    mount_resolver: MountResolver = field(init=False)

    def __post_init__(self) -> None:
        self.labels = LabelIndex(
            label_dir=self.label_dir, resolver=self.resolver, listdir=self.listdir
        )
        self.mount_resolver = MountResolver(
            mountinfo_path=self.mountinfo_path,
            resolver=self.resolver,
            canonicalize=self.canonicalize,
            read_mounts=self.read_mounts,
        )

    def _from_match(self, match: MountMatch) -> VolumeInfo:
        stats = self.statter.stat(match.root_path)
        name = ""
        if match.mount is not None:
            name = self.labels.find_label(match.mount.mount_source, match.device_id)
        return as_volume_info(
            match.root_path, match.device_id, match.mount, stats, name=name
        )

    def volume_for_path(self, path: str) -> VolumeInfo:
        """The volume backing `path`. If it cannot be determined, the result is neither
        valid nor ready.
        """
        match = self.mount_resolver.resolve(path)
        if match is None:
            return VolumeInfo()
        return self._from_match(match)

    def root(self) -> VolumeInfo:
        return self.volume_for_path("/")

    def enumerate(self) -> List[VolumeInfo]:
        infos = self.read_mounts(self.mountinfo_path, MountFilter.FILTERED)
        if not infos:
            logger.debug("No mount information available, only reporting /")
            return [self.root()]

        label_records = self.labels.build()
        volumes: Dict[str, VolumeInfo] = {}
        for info in infos:
            root_path = info.mount_point.as_posix()
            stats = self.statter.stat(root_path)
            # heuristic: anything but / without capacity is a pseudo filesystem
            if (stats is None or stats.bytes_total <= 0) and root_path != "/":
                logger.debug("Skipping %s, it reports no capacity", root_path)
                continue
            if info.device_id != self.resolver.for_path(root_path):
                logger.debug("Skipping %s, something is mounted over it", root_path)
                continue
            name = self.labels.label_for(
                info.mount_source, info.device_id, label_records
            )
            # a later mount at the same path shadows the earlier one
            volumes.pop(root_path, None)
            volumes[root_path] = as_volume_info(
                root_path, info.device_id, info, stats, name=name
            )
        return list(volumes.values())
