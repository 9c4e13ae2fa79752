# SPDX-License-Identifier: GPL-2.0-only
"""
dcmpatch - DICOM tag viewer and in-place editor.

Architecture:
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                              dcmpatch                                   │
    ├─────────────────────────────────────────────────────────────────────────┤
    │  CLI (cli.py)                                                           │
    │    tags, edit, hexdump                                                  │
    ├─────────────────────────────────────────────────────────────────────────┤
    │  EditSession (session.py)                                               │
    │    EMPTY -> LOADED -> EXPORTED, edit log, working rows                  │
    ├─────────────────────────────────────────────────────────────────────────┤
    │  Decoder (decoder.py)             Patcher (patcher.py)                  │
    │    bytes -> DecodedFile             bytes + edits -> bytes              │
    ├─────────────────────────────────────────────────────────────────────────┤
    │  Element records (element.py)     Part 10 file (file.py)                │
    │    Tag, VR, ElementRecord, TagRow   preamble, TransferSyntax, reading   │
    └─────────────────────────────────────────────────────────────────────────┘

Quick Start:
    from dcmpatch import decode, patch, Edit

    data = open('ct.dcm', 'rb').read()
    decoded = decode(data)
    for row in decoded.rows():
        print(row.display_tag, row.vr, row.value)

    out = patch(data, decoded, [Edit('00100010', 'SMITH^JANE')])
    # len(out) == len(data); only the PatientName bytes differ

decode() and patch() are pure functions and safe to call from several
threads at once.
"""

__version__ = '0.1.0'

from .element import (
    Tag,
    VR,
    ElementRecord,
    TagRow,
    BINARY_SENTINEL,
    hexdump,
)

from .errors import (
    DicomCodecError,
    MalformedFileError,
    EditError,
    UnknownTagError,
    BinaryElementError,
    LengthMismatchError,
    ValueEncodingError,
    SessionError,
)

from .file import (
    TransferSyntax,
    MEDIA_TYPE,
    EXPORT_FILENAME,
    read_file,
    read_file_async,
)

from .decoder import (
    DecodedFile,
    decode,
)

from .patcher import (
    Edit,
    LengthPolicy,
    encode_value,
    patch,
)

from .session import (
    EditSession,
    SessionState,
    Export,
)

__all__ = [
    '__version__',

    # Elements
    'Tag', 'VR', 'ElementRecord', 'TagRow', 'BINARY_SENTINEL', 'hexdump',

    # Errors
    'DicomCodecError', 'MalformedFileError', 'EditError', 'UnknownTagError',
    'BinaryElementError', 'LengthMismatchError', 'ValueEncodingError',
    'SessionError',

    # File
    'TransferSyntax', 'MEDIA_TYPE', 'EXPORT_FILENAME',
    'read_file', 'read_file_async',

    # Codec
    'DecodedFile', 'decode',
    'Edit', 'LengthPolicy', 'encode_value', 'patch',

    # Session
    'EditSession', 'SessionState', 'Export',
]
