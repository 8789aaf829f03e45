# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from dataclasses import dataclass, field
from typing import List, Protocol

from volscope.monitoring.labels import DEFAULT_LABEL_DIR
from volscope.monitoring.mountinfo import DEFAULT_MOUNTINFO_PATH
from volscope.monitoring.volumes import VolumeEnumerator
from volscope.schemas.storage.volume import VolumeInfo


class StorageClient(Protocol):
    """A low-level Storage related client."""

    def volume_for_path(self, path: str) -> VolumeInfo:
        """Get the volume backing the given path"""

    def mounted_volumes(self) -> List[VolumeInfo]:
        """Get every mounted volume worth reporting"""

    def root(self) -> VolumeInfo:
        """Get the volume mounted at /"""


@dataclass
class StorageCliClient(StorageClient):
    mountinfo_path: str = DEFAULT_MOUNTINFO_PATH
    label_dir: str = DEFAULT_LABEL_DIR
    enumerator: VolumeEnumerator = field(init=False)

    def __post_init__(self) -> None:
        self.enumerator = VolumeEnumerator(
            mountinfo_path=self.mountinfo_path, label_dir=self.label_dir
        )

    def volume_for_path(self, path: str) -> VolumeInfo:
        return self.enumerator.volume_for_path(path)

    def mounted_volumes(self) -> List[VolumeInfo]:
        return self.enumerator.enumerate()

    def root(self) -> VolumeInfo:
        return self.enumerator.root()
