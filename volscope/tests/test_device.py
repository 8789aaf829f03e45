# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import os
from typing import Optional
from unittest.mock import MagicMock

import pytest

from volscope.monitoring.device import (
    device_id_for_path,
    DeviceIdentityResolver,
    retrieve_device_id,
)
from volscope.schemas.storage.device import DeviceId
from volscope.tests.fakes import FakeFilesystem


class TestDeviceId:
    @staticmethod
    def test_parse() -> None:
        assert DeviceId.parse("8:1") == DeviceId(major=8, minor=1)
        assert str(DeviceId.parse("259:12")) == "259:12"

    @staticmethod
    @pytest.mark.parametrize("value", ["81", "8:", ":1", "a:b"])
    def test_parse_rejects_garbage(value: str) -> None:
        with pytest.raises(ValueError):
            DeviceId.parse(value)

    @staticmethod
    def test_from_dev() -> None:
        assert DeviceId.from_dev(os.makedev(259, 3)) == DeviceId(259, 3)

    @staticmethod
    def test_anonymous() -> None:
        assert DeviceId(0, 45).is_anonymous
        assert not DeviceId(8, 1).is_anonymous

    @staticmethod
    def test_no_mount_data_sentinel_is_not_zero() -> None:
        assert DeviceId.NO_MOUNT_DATA != DeviceId(0, 0)
        assert DeviceId.NO_MOUNT_DATA.minor >= 1 << 20


class TestRetrieveDeviceId:
    @staticmethod
    def test_trusts_non_anonymous_id() -> None:
        stat = MagicMock()

        rv = retrieve_device_id("/dev/sda2", DeviceId(8, 2), stat=stat)

        assert rv == DeviceId(8, 2)
        stat.assert_not_called()

    @staticmethod
    def test_anonymous_id_uses_block_device(fake_fs: FakeFilesystem) -> None:
        rv = retrieve_device_id("/dev/sda3", DeviceId(0, 45), stat=fake_fs.stat)

        assert rv == DeviceId(8, 3)

    @staticmethod
    def test_follows_symlinks(fake_fs: FakeFilesystem) -> None:
        rv = retrieve_device_id("/dev/disk/by-label/home", stat=fake_fs.stat)

        assert rv == DeviceId(8, 3)

    @staticmethod
    @pytest.mark.parametrize(
        "device",
        [
            # relative
            "sda3",
            # the root
            "/",
            "",
            # pseudo device
            "tmpfs",
            # not a block device
            "/mnt/data",
            # missing
            "/dev/sdz1",
            "/dev/disk/by-label/gone",
        ],
    )
    def test_unresolvable(fake_fs: FakeFilesystem, device: str) -> None:
        assert retrieve_device_id(device, DeviceId(0, 45), stat=fake_fs.stat) is None

    @staticmethod
    def test_relative_and_root_paths_are_not_stated(fake_fs: FakeFilesystem) -> None:
        retrieve_device_id("sda3", stat=fake_fs.stat)
        retrieve_device_id("/", stat=fake_fs.stat)

        assert fake_fs.stat_calls == []


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/mnt/data/sub/file", DeviceId(8, 2)),
        ("/home", DeviceId(0, 45)),
        ("/does/not/exist", None),
    ],
)
def test_device_id_for_path(
    fake_fs: FakeFilesystem, path: str, expected: Optional[DeviceId]
) -> None:
    assert device_id_for_path(path, stat=fake_fs.stat) == expected


def test_resolver_uses_injected_stat(fake_fs: FakeFilesystem) -> None:
    resolver = DeviceIdentityResolver(stat=fake_fs.stat)

    assert resolver.resolve("/dev/sda1") == DeviceId(8, 1)
    assert resolver.for_path("/") == DeviceId(8, 1)
