# SPDX-License-Identifier: GPL-2.0-only
"""
DICOM patcher - write edited text values back into a copy of the file.

Only the value payload of each edited element is overwritten. The element
keeps its declared length, so the file size, every header and every other
element's offset stay exactly as they were.

Example:
    from dcmpatch.decoder import decode
    from dcmpatch.patcher import Edit, LengthPolicy, patch

    decoded = decode(data)
    out = patch(data, decoded, [Edit('00100010', 'SMITH^JANE')])
    out = patch(data, decoded, [('00100020', 'ID1')], policy=LengthPolicy.PAD)

Length policy:
    STRICT  the new value must encode to the element's length, give or take
            the trailing padding: one pad byte for an odd-length value, or as
            many pad bytes as the old value carried. Anything else raises
            LengthMismatchError. Writing back a decoded value is a no-op.
    PAD     shorter values are padded with the VR's padding byte, longer
            values are truncated to the element's length (logged).
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, List, Mapping, Tuple, Union

from pydicom.charset import default_encoding

from .element import VR, ElementRecord, Tag
from .errors import (
    BinaryElementError,
    EditError,
    LengthMismatchError,
    MalformedFileError,
    UnknownTagError,
    ValueEncodingError,
)

__all__ = [
    'Edit',
    'LengthPolicy',
    'encode_value',
    'find_editable',
    'patch',
]

log = logging.getLogger("dcmpatch.patcher")


class LengthPolicy(Enum):
    """What to do when a new value does not fill the element exactly."""
    STRICT = auto()
    PAD = auto()


@dataclass(frozen=True)
class Edit:
    """Replace the text of one element."""
    tag_id: str
    new_text: str


EditLike = Union[Edit, Tuple[str, str]]


def _unpack(edit: EditLike) -> Tuple[str, str]:
    if isinstance(edit, Edit):
        return edit.tag_id, edit.new_text
    if isinstance(edit, (tuple, list)) and len(edit) == 2:
        return edit[0], edit[1]
    raise EditError(repr(edit), f"Invalid edit {edit!r}: expected Edit or (tag, value)")


def find_editable(elements: Mapping[str, ElementRecord], tag_id) -> ElementRecord:
    """Find the record an edit refers to."""
    try:
        key = Tag(tag_id).id
    except ValueError:
        raise UnknownTagError(str(tag_id)) from None
    record = elements.get(key)
    if record is None:
        raise UnknownTagError(key)
    if record.is_binary:
        raise BinaryElementError(key, record.vr)
    return record


def encode_value(record: ElementRecord, new_text: str,
                 policy: LengthPolicy = LengthPolicy.STRICT) -> bytes:
    """
    Encode new_text to exactly record.length bytes.

    Raises:
        BinaryElementError: record has no textual value
        ValueEncodingError: text not representable in the record's encoding
        LengthMismatchError: STRICT policy and the length differs
    """
    if record.is_binary:
        raise BinaryElementError(record.tag_id, record.vr)

    encoding = record.encoding or default_encoding
    try:
        raw = new_text.encode(encoding)
    except UnicodeEncodeError:
        raise ValueEncodingError(record.tag_id, encoding) from None

    pad = VR.padding(record.vr)
    if len(raw) == record.length:
        return raw

    # Room for one even-length pad byte, or the padding the old value had
    slack = max(record.padding, len(raw) % 2)
    if record.length - slack <= len(raw) < record.length:
        return raw + pad * (record.length - len(raw))

    if policy is LengthPolicy.STRICT:
        raise LengthMismatchError(record.tag_id, record.length, len(raw))

    if len(raw) > record.length:
        log.warning("Truncating value of %s from %d to %d bytes",
                    record.tag.display, len(raw), record.length)
        return raw[:record.length]
    return raw + pad * (record.length - len(raw))


def patch(original: bytes, elements: Mapping[str, ElementRecord],
          edits: Iterable[EditLike],
          policy: LengthPolicy = LengthPolicy.STRICT) -> bytes:
    """
    Apply text edits to a copy of original.

    Args:
        original: the buffer elements were decoded from
        elements: tag id -> ElementRecord (a DecodedFile works too)
        edits: ordered Edit objects or (tag_id, new_text) pairs; a later
            edit of the same tag wins
        policy: LengthPolicy for values that do not fill the element

    Returns:
        New bytes of the same length as original.

    Raises:
        UnknownTagError, BinaryElementError, LengthMismatchError,
        ValueEncodingError: an edit was rejected, nothing is written
        EditError: an edit is neither an Edit nor a (tag, value) pair
        MalformedFileError: a record lies outside original
    """
    if hasattr(elements, 'elements'):
        # DecodedFile
        elements = elements.elements

    # Validate and encode everything before touching any byte
    writes: List[Tuple[int, bytes]] = []
    for edit in edits:
        tag_id, new_text = _unpack(edit)
        record = find_editable(elements, tag_id)
        if record.end_offset > len(original):
            raise MalformedFileError(
                f"Element {record.tag.display} ends at {record.end_offset}, "
                f"buffer has {len(original)} bytes; table belongs to another buffer")
        writes.append((record.data_offset, encode_value(record, new_text, policy)))

    out = bytearray(original)
    for offset, raw in writes:
        out[offset:offset + len(raw)] = raw

    log.debug("Applied %d edits to %d byte buffer", len(writes), len(out))
    return bytes(out)
