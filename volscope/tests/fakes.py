# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import os
import posixpath
import stat
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional

from volscope.monitoring.device import DeviceIdentityResolver
from volscope.monitoring.mountinfo import MountFilter, parse_mount_info
from volscope.monitoring.sink.protocol import SinkImpl
from volscope.monitoring.sink.utils import Factory
from volscope.monitoring.statvfs import StatvfsVolumeStatter
from volscope.monitoring.volumes import VolumeEnumerator
from volscope.schemas.storage.mount import MountInfo
from volscope.schemas.storage.volume import VolumeInfo


@dataclass
class FakeStat:
    st_mode: int = stat.S_IFDIR | 0o755
    st_dev: int = 0
    st_rdev: int = 0


def directory_on(major: int, minor: int) -> FakeStat:
    return FakeStat(st_dev=os.makedev(major, minor))


def block_device(major: int, minor: int) -> FakeStat:
    return FakeStat(st_mode=stat.S_IFBLK | 0o660, st_rdev=os.makedev(major, minor))


@dataclass
class FakeStatvfs:
    f_blocks: int = 1000
    f_bfree: int = 600
    f_bavail: int = 500
    f_bsize: int = 4096
    f_frsize: int = 4096
    f_flag: int = 0


@dataclass
class FakeFilesystem:
    """An in-memory view of the paths, symlinks and statvfs results of a machine."""

    stats: Dict[str, FakeStat] = field(default_factory=dict)
    symlinks: Dict[str, str] = field(default_factory=dict)
    statvfs_results: Dict[str, FakeStatvfs] = field(default_factory=dict)
    stat_calls: List[str] = field(default_factory=list)

    def _follow(self, path: str) -> str:
        seen = set()
        while path in self.symlinks and path not in seen:
            seen.add(path)
            target = self.symlinks[path]
            path = posixpath.normpath(
                posixpath.join(posixpath.dirname(path), target)
            )
        return path

    def stat(self, path: str) -> FakeStat:
        self.stat_calls.append(path)
        target = self._follow(path)
        try:
            return self.stats[target]
        except KeyError:
            raise FileNotFoundError(path)

    def statvfs(self, path: str) -> FakeStatvfs:
        try:
            return self.statvfs_results[path]
        except KeyError:
            raise FileNotFoundError(path)

    def realpath(self, path: str) -> Optional[str]:
        target = self._follow(posixpath.normpath(path))
        if target not in self.stats:
            return None
        return target

    def listdir(self, path: str) -> List[str]:
        prefix = path.rstrip("/") + "/"
        names = [
            p[len(prefix) :]
            for p in [*self.stats, *self.symlinks]
            if p.startswith(prefix) and "/" not in p[len(prefix) :]
        ]
        if not names and path not in self.stats:
            raise FileNotFoundError(path)
        return sorted(set(names), key=names.index)


@dataclass
class FakeStorageClient:
    volumes: List[VolumeInfo] = field(default_factory=list)
    by_path: Dict[str, VolumeInfo] = field(default_factory=dict)

    def volume_for_path(self, path: str) -> VolumeInfo:
        return self.by_path.get(path, VolumeInfo())

    def mounted_volumes(self) -> List[VolumeInfo]:
        return self.volumes

    def root(self) -> VolumeInfo:
        return self.volume_for_path("/")


@dataclass
class FakeCliObject:
    registry: Mapping[str, Factory[SinkImpl]]
    client: FakeStorageClient = field(default_factory=FakeStorageClient)
    requested: List[tuple] = field(default_factory=list)

    def storage_client(
        self, mountinfo_path: str, label_dir: str
    ) -> FakeStorageClient:
        self.requested.append((mountinfo_path, label_dir))
        return self.client


LABEL_DIR = "/dev/disk/by-label"

SAMPLE_MOUNTINFO = """\
22 1 8:1 / / rw,relatime shared:1 - ext4 /dev/sda1 rw,errors=remount-ro
23 22 0:21 / /proc rw,nosuid,nodev,noexec,relatime shared:12 - proc proc rw
24 22 0:22 / /sys rw,nosuid,nodev,noexec,relatime shared:7 - sysfs sysfs rw
25 22 0:5 / /dev rw,nosuid,relatime shared:2 - devtmpfs udev rw,mode=755
26 22 0:25 / /run rw,nosuid,nodev,noexec,relatime shared:5 - tmpfs tmpfs rw,mode=755
30 22 8:2 / /mnt/data rw,relatime shared:30 - ext4 /dev/sda2 rw
31 30 8:2 /sub /mnt/data/sub rw,relatime shared:30 - ext4 /dev/sda2 rw
40 22 0:45 /@home /home rw,relatime shared:40 - btrfs /dev/sda3 rw,subvol=/@home
"""


def sample_filesystem() -> FakeFilesystem:
    fs = FakeFilesystem()
    fs.stats.update(
        {
            "/": directory_on(8, 1),
            "/etc": directory_on(8, 1),
            "/run": directory_on(0, 25),
            "/mnt": directory_on(8, 1),
            "/mnt/data": directory_on(8, 2),
            "/mnt/data/sub": directory_on(8, 2),
            "/mnt/data/sub/file": directory_on(8, 2),
            "/home": directory_on(0, 45),
            "/home/user": directory_on(0, 45),
            "/dev/sda1": block_device(8, 1),
            "/dev/sda2": block_device(8, 2),
            "/dev/sda3": block_device(8, 3),
            LABEL_DIR: directory_on(0, 5),
        }
    )
    fs.symlinks.update(
        {
            LABEL_DIR + "/My\\x20Disk": "../../sda2",
            LABEL_DIR + "/home": "../../sda3",
            LABEL_DIR + "/gone": "../../sdz1",
        }
    )
    fs.statvfs_results.update(
        {
            "/": FakeStatvfs(f_blocks=10_000),
            "/run": FakeStatvfs(f_blocks=0, f_bfree=0, f_bavail=0),
            "/mnt/data": FakeStatvfs(f_blocks=2_000),
            "/mnt/data/sub": FakeStatvfs(f_blocks=2_000),
            "/home": FakeStatvfs(f_blocks=5_000),
        }
    )
    return fs


def fake_read_mounts(text: str) -> Callable[[str, MountFilter], List[MountInfo]]:
    def read(path: str, filter: MountFilter) -> List[MountInfo]:
        return parse_mount_info(text.splitlines(), filter)

    return read


def make_enumerator(fs: FakeFilesystem, mountinfo: str) -> VolumeEnumerator:
    return VolumeEnumerator(
        label_dir=LABEL_DIR,
        resolver=DeviceIdentityResolver(stat=fs.stat),
        statter=StatvfsVolumeStatter(statvfs=fs.statvfs),
        canonicalize=fs.realpath,
        listdir=fs.listdir,
        read_mounts=fake_read_mounts(mountinfo),
    )
