# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class DeviceId:
    """A (major, minor) pair identifying a filesystem instance.

    A major of zero denotes an anonymous device (btrfs subvolumes, tmpfs, ...), whose
    identity in the mount table is not the identity of any block device node.
    """

    major: int
    minor: int

    NO_MOUNT_DATA: ClassVar[DeviceId]

    @classmethod
    def parse(cls, s: str) -> DeviceId:
        """Parse the `major:minor` form used by /proc/self/mountinfo.

        >>> DeviceId.parse("259:2")
        DeviceId(major=259, minor=2)
        """
        major, sep, minor = s.partition(":")
        if not sep:
            raise ValueError(f"Expected 'major:minor', but got {s!r}")
        return cls(major=int(major), minor=int(minor))

    @classmethod
    def from_dev(cls, dev: int) -> DeviceId:
        return cls(major=os.major(dev), minor=os.minor(dev))

    @property
    def is_anonymous(self) -> bool:
        return self.major == 0

    def __str__(self) -> str:
        return f"{self.major}:{self.minor}"


# Linux uses 20 bits for the minor number, so this can never come from the kernel.
DeviceId.NO_MOUNT_DATA = DeviceId(major=0, minor=0xFFFFFFFF)
