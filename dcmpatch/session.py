# SPDX-License-Identifier: GPL-2.0-only
"""
Editing session - one loaded file, its element table and an edit log.

Example:
    from dcmpatch.session import EditSession

    session = EditSession()
    session.load_file('ct.dcm')
    session.edit('00100010', 'SMITH^JANE')
    export = session.export()
    # export.data, export.filename ('modified.dcm'), export.media_type

State machine:
    EMPTY ──load──→ LOADED ──edit──→ LOADED
                      │  ↑
                export│  │edit
                      ↓  │
                    EXPORTED ──load──→ LOADED (previous file discarded)

The original buffer is never modified. Edits live in the log and the working
rows until export() hands them to patch().
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional, Union

from .decoder import DecodedFile, decode
from .element import Tag, TagRow
from .errors import SessionError, UnknownTagError
from .file import EXPORT_FILENAME, MEDIA_TYPE, read_file, read_file_async
from .patcher import Edit, LengthPolicy, encode_value, find_editable, patch

__all__ = [
    'EditSession',
    'SessionState',
    'Export',
]

log = logging.getLogger("dcmpatch.session")


class SessionState(Enum):
    """Session lifecycle."""
    EMPTY = auto()
    LOADED = auto()
    EXPORTED = auto()


@dataclass(frozen=True)
class Export:
    """Patched file ready for download."""
    data: bytes
    filename: str = EXPORT_FILENAME
    media_type: str = MEDIA_TYPE


class EditSession:
    """
    Holds the current file and the user's pending edits.

    Not thread-safe; one session serves one user.
    """

    def __init__(self):
        self.state: SessionState = SessionState.EMPTY
        self._buffer: Optional[bytes] = None
        self._decoded: Optional[DecodedFile] = None
        self._rows: Dict[str, TagRow] = {}
        self._edits: List[Edit] = []

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, buffer: bytes, transfer_syntax: str = None) -> DecodedFile:
        """
        Decode buffer and start over with it.

        A failed decode raises MalformedFileError and keeps the previous file.
        """
        data = bytes(buffer)
        decoded = decode(data, transfer_syntax=transfer_syntax)

        self._buffer = data
        self._decoded = decoded
        self._rows = {row.raw_tag: row for row in decoded.rows()}
        self._edits = []
        self.state = SessionState.LOADED
        log.info("Loaded %d bytes, %d elements", len(data), len(decoded))
        return decoded

    def load_file(self, path: Union[str, os.PathLike], transfer_syntax: str = None) -> DecodedFile:
        return self.load(read_file(path), transfer_syntax=transfer_syntax)

    async def load_file_async(self, path: Union[str, os.PathLike],
                              transfer_syntax: str = None) -> DecodedFile:
        """Like load_file(), awaiting only the read."""
        data = await read_file_async(path)
        return self.load(data, transfer_syntax=transfer_syntax)

    def _require_loaded(self) -> None:
        if self.state is SessionState.EMPTY:
            raise SessionError("No file loaded")

    # =========================================================================
    # Inspection
    # =========================================================================

    @property
    def decoded(self) -> Optional[DecodedFile]:
        return self._decoded

    @property
    def original(self) -> Optional[bytes]:
        return self._buffer

    @property
    def edits(self) -> List[Edit]:
        return list(self._edits)

    def rows(self) -> List[TagRow]:
        """Working rows, edited values included, in byte order."""
        return list(self._rows.values())

    def row(self, tag_id) -> TagRow:
        self._require_loaded()
        try:
            key = Tag(tag_id).id
        except ValueError:
            raise UnknownTagError(str(tag_id)) from None
        if key not in self._rows:
            raise UnknownTagError(key)
        return self._rows[key]

    @property
    def dirty(self) -> bool:
        return bool(self._edits)

    # =========================================================================
    # Editing
    # =========================================================================

    def edit(self, tag_id, new_value: str) -> TagRow:
        """
        Record an edit.

        Raises:
            UnknownTagError: tag_id is not in the loaded file
            BinaryElementError: the element is not textual
        """
        self._require_loaded()
        record = find_editable(self._decoded.elements, tag_id)

        self._edits.append(Edit(record.tag_id, new_value))
        row = self._rows[record.tag_id].with_value(new_value)
        self._rows[record.tag_id] = row
        self.state = SessionState.LOADED
        log.debug("Edited %s -> %r", row.display_tag, new_value)
        return row

    def check(self, tag_id, new_value: str,
              policy: LengthPolicy = LengthPolicy.STRICT) -> bytes:
        """Encode a candidate value without recording it; raises like patch()."""
        self._require_loaded()
        record = find_editable(self._decoded.elements, tag_id)
        return encode_value(record, new_value, policy)

    def revert(self, tag_id) -> TagRow:
        """Drop all edits of one tag and restore its original row."""
        self._require_loaded()
        record = find_editable(self._decoded.elements, tag_id)
        self._edits = [e for e in self._edits if e.tag_id != record.tag_id]
        row = record.to_row()
        self._rows[record.tag_id] = row
        return row

    def revert_all(self) -> None:
        self._require_loaded()
        self._edits = []
        self._rows = {row.raw_tag: row for row in self._decoded.rows()}

    # =========================================================================
    # Export
    # =========================================================================

    def export(self, policy: LengthPolicy = LengthPolicy.STRICT) -> Export:
        """
        Apply the edit log to a copy of the original buffer.

        On failure nothing changes and the error from patch() propagates.
        """
        self._require_loaded()
        data = patch(self._buffer, self._decoded.elements, self._edits, policy=policy)
        self.state = SessionState.EXPORTED
        log.info("Exported %d bytes with %d edits", len(data), len(self._edits))
        return Export(data)

    def save(self, path: Union[str, os.PathLike] = EXPORT_FILENAME,
             policy: LengthPolicy = LengthPolicy.STRICT) -> Export:
        export = self.export(policy=policy)
        with open(path, 'wb') as f:
            f.write(export.data)
        return export
