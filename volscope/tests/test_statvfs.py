# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import os
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from volscope.monitoring.statvfs import (
    make_volume_statter,
    ST_RDONLY,
    StatfsVolumeStatter,
    StatvfsVolumeStatter,
)
from volscope.schemas.storage.statvfs import VolumeStats
from volscope.tests.fakes import FakeStatvfs


@dataclass
class FakeStatfs:
    f_blocks: int = 100
    f_bfree: int = 50
    f_bavail: int = 40
    f_bsize: int = 1024
    f_frsize: int = 0


class TestStatvfsVolumeStatter:
    @staticmethod
    def test_stat() -> None:
        result = FakeStatvfs(
            f_blocks=1000, f_bfree=600, f_bavail=500, f_bsize=4096, f_frsize=512
        )
        statvfs = MagicMock(return_value=result)

        stats = StatvfsVolumeStatter(statvfs=statvfs).stat("/mnt/data")

        statvfs.assert_called_once_with("/mnt/data")
        assert stats == VolumeStats(
            bytes_total=1000 * 512,
            bytes_free=600 * 512,
            bytes_available=500 * 512,
            block_size=4096,
            read_only=False,
        )

    @staticmethod
    def test_falls_back_to_block_size() -> None:
        result = FakeStatvfs(f_blocks=10, f_bsize=4096, f_frsize=0)

        stats = StatvfsVolumeStatter(statvfs=lambda _: result).stat("/")

        assert stats is not None
        assert stats.bytes_total == 10 * 4096

    @staticmethod
    def test_read_only() -> None:
        result = FakeStatvfs(f_flag=ST_RDONLY)

        stats = StatvfsVolumeStatter(statvfs=lambda _: result).stat("/")

        assert stats is not None
        assert stats.read_only

    @staticmethod
    def test_failure() -> None:
        statvfs = MagicMock(side_effect=PermissionError("/root"))

        assert StatvfsVolumeStatter(statvfs=statvfs).stat("/root") is None


class TestStatfsVolumeStatter:
    @staticmethod
    def test_without_flags_is_writable() -> None:
        stats = StatfsVolumeStatter(statfs=lambda _: FakeStatfs()).stat("/data")

        assert stats == VolumeStats(
            bytes_total=100 * 1024,
            bytes_free=50 * 1024,
            bytes_available=40 * 1024,
            block_size=1024,
            read_only=False,
        )

    @staticmethod
    def test_read_only_from_os_statvfs_result() -> None:
        # os.statvfs_result only carries f_flag
        result = os.statvfs_result((4096, 4096, 10, 5, 5, 0, 0, 0, ST_RDONLY, 255))
        statter = make_volume_statter("android")
        assert isinstance(statter, StatfsVolumeStatter)
        statter.statfs = lambda _: result

        stats = statter.stat("/system")

        assert stats is not None
        assert stats.read_only
        assert stats.bytes_total == 10 * 4096

    @staticmethod
    def test_f_flags_is_preferred() -> None:
        result = MagicMock(
            f_blocks=1, f_bfree=1, f_bavail=1, f_bsize=1, f_frsize=1, f_flags=ST_RDONLY
        )
        result.f_flag = 0

        stats = StatfsVolumeStatter(statfs=lambda _: result).stat("/system")

        assert stats is not None
        assert stats.read_only

    @staticmethod
    def test_failure() -> None:
        statfs = MagicMock(side_effect=FileNotFoundError("/gone"))

        assert StatfsVolumeStatter(statfs=statfs).stat("/gone") is None


@pytest.mark.parametrize(
    "platform, expected",
    [
        ("linux", StatvfsVolumeStatter),
        ("android", StatfsVolumeStatter),
    ],
)
def test_make_volume_statter(platform: str, expected: type) -> None:
    assert isinstance(make_volume_statter(platform), expected)
