# SPDX-License-Identifier: GPL-2.0-only
"""
DICOM Part 10 File handling.

DICOM file structure:
    ├── Preamble (128 bytes) - any content
    ├── Prefix "DICM" (4 bytes)
    ├── File Meta Information (Group 0002, always explicit VR LE)
    │   ├── (0002,0000) File Meta Information Group Length
    │   ├── (0002,0001) File Meta Information Version
    │   ├── (0002,0002) Media Storage SOP Class UID
    │   ├── (0002,0003) Media Storage SOP Instance UID
    │   ├── (0002,0010) Transfer Syntax UID
    │   ├── (0002,0012) Implementation Class UID
    │   └── (0002,0013) Implementation Version Name
    └── Dataset (encoding per Transfer Syntax)

Preamble and prefix are optional in the streams we accept: a buffer without
them is read as a bare data set (or a bare meta group followed by one).
"""

import asyncio
import logging
import os
from typing import Union

__all__ = [
    'TransferSyntax',
    'PREAMBLE_LENGTH',
    'PREFIX',
    'MEDIA_TYPE',
    'EXPORT_FILENAME',
    'has_preamble',
    'read_file',
    'read_file_async',
]

log = logging.getLogger("dcmpatch.file")

PREAMBLE_LENGTH = 128
PREFIX = b'DICM'

MEDIA_TYPE = 'application/dicom'
EXPORT_FILENAME = 'modified.dcm'


class TransferSyntax:
    """Common Transfer Syntax UIDs."""
    ImplicitVRLittleEndian = '1.2.840.10008.1.2'
    ExplicitVRLittleEndian = '1.2.840.10008.1.2.1'
    ExplicitVRBigEndian = '1.2.840.10008.1.2.2'
    DeflatedExplicitVRLittleEndian = '1.2.840.10008.1.2.1.99'

    @classmethod
    def is_implicit(cls, ts: str) -> bool:
        return ts == cls.ImplicitVRLittleEndian

    @classmethod
    def is_big_endian(cls, ts: str) -> bool:
        return ts == cls.ExplicitVRBigEndian

    @classmethod
    def is_deflated(cls, ts: str) -> bool:
        return ts == cls.DeflatedExplicitVRLittleEndian


def has_preamble(data: bytes) -> bool:
    """True if data starts with the 128-byte preamble and 'DICM' prefix."""
    return (len(data) >= PREAMBLE_LENGTH + len(PREFIX)
            and data[PREAMBLE_LENGTH:PREAMBLE_LENGTH + len(PREFIX)] == PREFIX)


def read_file(path: Union[str, os.PathLike]) -> bytes:
    """Read a whole file into an immutable buffer."""
    with open(path, 'rb') as f:
        data = f.read()
    log.debug("Read %d bytes from %s", len(data), path)
    return data


async def read_file_async(path: Union[str, os.PathLike]) -> bytes:
    """Read a file without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, read_file, path)
