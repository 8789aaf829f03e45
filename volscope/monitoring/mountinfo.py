# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Parsing of the kernel's live mount table, /proc/self/mountinfo.

Each line has the shape (see proc_pid_mountinfo(5)):

    36 35 98:0 /mnt1 /mnt2 rw,noatime master:1 - ext3 /dev/root rw,errors=continue
    (1)(2)(3)   (4)   (5)      (6)      (7)   (8) (9)   (10)         (11)

Records are returned in table order, i.e. the order in which the mounts happened.
"""
import logging
import re
from enum import auto, Enum
from pathlib import Path
from typing import Iterable, List

from volscope.schemas.storage.device import DeviceId
from volscope.schemas.storage.mount import MountInfo

logger = logging.getLogger(__name__)

DEFAULT_MOUNTINFO_PATH = "/proc/self/mountinfo"

# the kernel escapes ' ', '\t', '\n' and '\\' as three octal digits
_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")

_PSEUDO_MOUNT_PARENTS = ("/dev", "/proc", "/sys", "/var/run", "/var/lock")
_PSEUDO_FILESYSTEM_TYPES = frozenset({"rootfs"})


class MountFilter(Enum):
    ALL = auto()
    FILTERED = auto()


def unescape(field: str) -> str:
    r"""
    >>> unescape(r"/mnt/my\040disk")
    '/mnt/my disk'
    """
    if "\\" not in field:
        return field
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


def is_parent_of(parent: str, path: str) -> bool:
    """Whether `parent` is `path` or one of its ancestors, compared component-wise.

    >>> is_parent_of("/mnt/data", "/mnt/data/sub")
    True
    >>> is_parent_of("/mnt/data", "/mnt/database")
    False
    """
    if parent == "/":
        return path.startswith("/")
    parent = parent.rstrip("/")
    return path == parent or path.startswith(parent + "/")


def as_mount_info(line: str) -> MountInfo:
    mount_info = line.split()
    try:
        separator_idx = mount_info.index("-", 6)
    except ValueError as e:
        raise ValueError(f"Missing '-' separator in mountinfo line: {line!r}") from e
    if len(mount_info) < separator_idx + 3:
        raise ValueError(f"Missing filesystem fields in mountinfo line: {line!r}")
    super_options = (
        mount_info[separator_idx + 3].split(",")
        if len(mount_info) > separator_idx + 3
        else []
    )
    return MountInfo(
        mount_id=int(mount_info[0]),
        parent_id=int(mount_info[1]),
        device_id=DeviceId.parse(mount_info[2]),
        root=Path(unescape(mount_info[3])),
        mount_point=Path(unescape(mount_info[4])),
        mount_options=mount_info[5].split(","),
        optional_fields=mount_info[6:separator_idx],
        filesystem_type=mount_info[separator_idx + 1],
        mount_source=unescape(mount_info[separator_idx + 2]),
        super_options=super_options,
    )


def should_include(info: MountInfo) -> bool:
    """Whether a mount is worth reporting as a storage volume.

    Ignores mounts under /dev, /proc and /sys (cgroups, binfmt_misc, devpts, ...),
    under /var/run and /var/lock (usually pseudo filesystems, or bind mounts of /run
    that would duplicate every entry) and the "rootfs" left behind by the initrd root
    pivot. Pseudo filesystems with a zero size are dropped later, once statistics are
    known.
    """
    mount_point = info.mount_point.as_posix()
    if any(is_parent_of(p, mount_point) for p in _PSEUDO_MOUNT_PARENTS):
        return False
    return info.filesystem_type not in _PSEUDO_FILESYSTEM_TYPES


def parse_mount_info(
    lines: Iterable[str], filter: MountFilter = MountFilter.ALL
) -> List[MountInfo]:
    infos = []
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            info = as_mount_info(line)
        except ValueError:
            logger.debug("Skipping malformed mountinfo line %d", lineno, exc_info=True)
            continue
        if filter is MountFilter.FILTERED and not should_include(info):
            continue
        infos.append(info)
    return infos


def read_mount_info(
    path: str = DEFAULT_MOUNTINFO_PATH, filter: MountFilter = MountFilter.ALL
) -> List[MountInfo]:
    """Read and parse the mount table at `path`.

    An unreadable table yields an empty list; callers treat that as "no mount
    information available".
    """
    try:
        with open(path, "r", errors="surrogateescape") as file:
            content = file.read()
    except OSError:
        logger.debug("Could not read mount table %s", path, exc_info=True)
        return []
    return parse_mount_info(content.splitlines(), filter)
