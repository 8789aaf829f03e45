# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import pytest

from volscope.tests.fakes import FakeFilesystem, sample_filesystem


@pytest.fixture
def fake_fs() -> FakeFilesystem:
    return sample_filesystem()
