# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from volscope.monitoring.device import DeviceIdentityResolver
from volscope.schemas.storage.device import DeviceId
from volscope.schemas.storage.volume import LabelRecord

logger = logging.getLogger(__name__)

DEFAULT_LABEL_DIR = "/dev/disk/by-label"

REPLACEMENT_CHARACTER = "\ufffd"

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def decode_fs_enc_string(s: str) -> str:
    r"""Decode a label encoded by udev's ID_LABEL_FS_ENC (blkid_encode_string()).

    Characters that are not safe in a file name (e.g. '\' or ' ') are encoded as
    `\xHH`, everything else is kept as is. An invalid hex pair decodes to U+FFFD.

    >>> decode_fs_enc_string(r"My\x20Disk")
    'My Disk'
    >>> decode_fs_enc_string(r"bad\xZZpair")
    'bad�pair'
    """
    start = s.find("\\")
    if start < 0:
        return s

    decoded = [s[:start]]
    i = start
    size = len(s)
    while i < size:
        c = s[i]
        if c == "\\" and size - i >= 4 and s[i + 1] == "x":
            hex_pair = s[i + 2 : i + 4]
            if all(h in _HEX_DIGITS for h in hex_pair):
                decoded.append(chr(int(hex_pair, 16)))
            else:
                decoded.append(REPLACEMENT_CHARACTER)
            i += 4
            continue
        decoded.append(c)
        i += 1
    return "".join(decoded)


ListDirFn = Callable[[str], Iterable[str]]


@dataclass
class LabelIndex:
    """Maps device identities to filesystem labels using a directory of symlinks,
    one per label, each named after the (encoded) label and pointing to the device
    node.
    """

    label_dir: str = DEFAULT_LABEL_DIR
    resolver: DeviceIdentityResolver = field(default_factory=DeviceIdentityResolver)
    listdir: ListDirFn = field(default=os.listdir)

    def _entries(self) -> Iterator[Tuple[str, Optional[DeviceId]]]:
        try:
            names = list(self.listdir(self.label_dir))
        except OSError:
            logger.debug("Could not list %s", self.label_dir, exc_info=True)
            return
        for name in names:
            if name in (".", ".."):
                continue
            path = os.path.join(self.label_dir, name)
            yield name, self.resolver.resolve(path)

    def build(self) -> List[LabelRecord]:
        return [
            LabelRecord(label=decode_fs_enc_string(name), device_id=device_id)
            for name, device_id in self._entries()
            if device_id is not None
        ]

    def label_for(
        self,
        device: str,
        device_id: Optional[DeviceId],
        records: Iterable[LabelRecord],
    ) -> str:
        """Find the label of a mounted device among previously built `records`."""
        resolved = self.resolver.resolve(device, device_id)
        if resolved is None:
            return ""
        for record in records:
            if record.device_id == resolved:
                return record.label
        return ""

    def find_label(self, device: str, device_id: Optional[DeviceId]) -> str:
        """Like `label_for`, but scans the directory on demand and stops at the first
        match.
        """
        resolved = self.resolver.resolve(device, device_id)
        if resolved is None:
            return ""
        for name, entry_id in self._entries():
            if entry_id == resolved:
                return decode_fs_enc_string(name)
        return ""
