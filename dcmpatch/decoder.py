# SPDX-License-Identifier: GPL-2.0-only
"""
DICOM decoder - bytes to an ordered element table.

The decoder walks the (optional) preamble, the file meta group and the data
set once, front to back, and records where every element's value lives.
Textual VRs are decoded to str; everything else stays as coordinates only.

Example:
    from dcmpatch.decoder import decode

    decoded = decode(open('ct.dcm', 'rb').read())
    for record in decoded:
        print(record)

decode() keeps no state between calls and never modifies its input.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from pydicom.charset import convert_encodings, default_encoding

from .element import VR, ElementRecord, Tag, TagRow, implicit_vr_for
from .errors import MalformedFileError
from .file import PREAMBLE_LENGTH, PREFIX, TransferSyntax, has_preamble

__all__ = [
    'DecodedFile',
    'decode',
    'ITEM_TAG',
    'ITEM_DELIM_TAG',
    'SEQ_DELIM_TAG',
    'UNDEFINED_LENGTH',
]

log = logging.getLogger("dcmpatch.decoder")

ITEM_TAG = 0xFFFEE000
ITEM_DELIM_TAG = 0xFFFEE00D
SEQ_DELIM_TAG = 0xFFFEE0DD
UNDEFINED_LENGTH = 0xFFFFFFFF

TRANSFER_SYNTAX_TAG = '00020010'
SPECIFIC_CHARACTER_SET_TAG = '00080005'


@dataclass(frozen=True)
class DecodedFile:
    """
    Result of decode().

    elements maps tag id to ElementRecord in byte order. Offsets are only
    valid for the buffer that was decoded.
    """

    elements: Dict[str, ElementRecord]
    transfer_syntax: str
    implicit_vr: bool
    little_endian: bool
    has_preamble: bool
    size: int

    def __iter__(self) -> Iterator[ElementRecord]:
        return iter(self.elements.values())

    def __len__(self) -> int:
        return len(self.elements)

    def __contains__(self, key) -> bool:
        try:
            return Tag(key).id in self.elements
        except ValueError:
            return False

    def __getitem__(self, key) -> ElementRecord:
        return self.elements[Tag(key).id]

    def get(self, key, default=None) -> Optional[ElementRecord]:
        try:
            return self[key]
        except (KeyError, ValueError):
            return default

    def rows(self) -> List[TagRow]:
        """Presentation rows, one per element, in byte order."""
        return [record.to_row() for record in self.elements.values()]


# =============================================================================
# Element headers
# =============================================================================

def _read_header(data: bytes, pos: int, implicit_vr: bool,
                 little_endian: bool) -> Tuple[Tag, Optional[str], int, int]:
    """Parse tag, VR and length. Returns (tag, vr, length, value_offset)."""
    end = len(data)
    if pos + 8 > end:
        raise MalformedFileError("Truncated element header", pos)

    fmt = '<' if little_endian else '>'
    group, element = struct.unpack_from(fmt + 'HH', data, pos)
    tag = Tag(group, element)

    # Items and delimiters never carry a VR
    if group == 0xFFFE or implicit_vr:
        length = struct.unpack_from(fmt + 'I', data, pos + 4)[0]
        vr = None if group == 0xFFFE else implicit_vr_for(tag)
        return tag, vr, length, pos + 8

    vr = data[pos+4:pos+6].decode('ascii', errors='replace')
    if VR.uses_long_length(vr):
        if pos + 12 > end:
            raise MalformedFileError(f"Truncated element header for {tag}", pos)
        # 2 reserved bytes
        length = struct.unpack_from(fmt + 'I', data, pos + 8)[0]
        return tag, vr, length, pos + 12

    length = struct.unpack_from(fmt + 'H', data, pos + 6)[0]
    return tag, vr, length, pos + 8


def _skip(data: bytes, pos: int, length: int, tag: Tag) -> int:
    end = pos + length
    if end > len(data):
        raise MalformedFileError(
            f"Value length {length} of {tag} runs past end of buffer ({len(data)} bytes)", pos)
    return end


def _find_sequence_end(data: bytes, pos: int, implicit_vr: bool,
                       little_endian: bool) -> int:
    """Return the offset just past the sequence delimiter closing the value at pos."""
    while True:
        tag, _, length, value_pos = _read_header(data, pos, implicit_vr, little_endian)
        if tag == SEQ_DELIM_TAG:
            return value_pos
        if tag != ITEM_TAG:
            raise MalformedFileError(f"Unexpected {tag} inside undefined length value", pos)
        if length == UNDEFINED_LENGTH:
            pos = _find_item_end(data, value_pos, implicit_vr, little_endian)
        else:
            pos = _skip(data, value_pos, length, tag)


def _find_item_end(data: bytes, pos: int, implicit_vr: bool,
                   little_endian: bool) -> int:
    """Return the offset just past the item delimiter closing the item at pos."""
    while True:
        tag, vr, length, value_pos = _read_header(data, pos, implicit_vr, little_endian)
        if tag == ITEM_DELIM_TAG:
            return value_pos
        if tag.group == 0xFFFE:
            raise MalformedFileError(f"Unexpected {tag} inside sequence item", pos)
        if length == UNDEFINED_LENGTH:
            pos = _find_sequence_end(data, value_pos, implicit_vr or vr == 'UN', little_endian)
        else:
            pos = _skip(data, value_pos, length, tag)


# =============================================================================
# Elements
# =============================================================================

def _decode_text(raw: bytes, encoding: str) -> Tuple[str, int]:
    """Return (value, number of trailing padding bytes)."""
    payload = raw.rstrip(b' \x00')
    return payload.decode(encoding, errors='replace'), len(raw) - len(payload)


def _decode_element(data: bytes, pos: int, implicit_vr: bool, little_endian: bool,
                    encoding: str) -> Tuple[ElementRecord, int]:
    """Decode one top-level element. Returns (record, next_offset)."""
    tag, vr, length, value_pos = _read_header(data, pos, implicit_vr, little_endian)

    if tag.group == 0xFFFE:
        raise MalformedFileError(f"Unexpected item or delimiter {tag} in data set", pos)

    if length == UNDEFINED_LENGTH:
        # SQ, encapsulated pixel data, or UN holding an implicit VR sequence
        end = _find_sequence_end(data, value_pos, implicit_vr or vr == 'UN', little_endian)
        record = ElementRecord(tag.id, vr, value_pos, end - value_pos,
                               header_offset=pos, undefined_length=True)
        return record, end

    end = _skip(data, value_pos, length, tag)

    if VR.is_text(vr):
        value, padding = _decode_text(data[value_pos:end], encoding)
        return ElementRecord(tag.id, vr, value_pos, length, value, encoding,
                             header_offset=pos, padding=padding), end

    if not VR.is_valid(vr):
        log.warning("Unknown VR %r for %s at offset %d, treating as binary", vr, tag, pos)
    return ElementRecord(tag.id, vr, value_pos, length, header_offset=pos), end


def _add(elements: Dict[str, ElementRecord], record: ElementRecord) -> None:
    if record.tag_id in elements:
        raise MalformedFileError(f"Duplicate tag {record.tag.display}", record.header_offset)
    elements[record.tag_id] = record


def _peek_group(data: bytes, pos: int) -> Optional[int]:
    if pos + 2 > len(data):
        return None
    return struct.unpack_from('<H', data, pos)[0]


def _guess_transfer_syntax(data: bytes, pos: int) -> str:
    """Explicit VR if the bytes after the first tag look like a VR code."""
    candidate = data[pos+4:pos+6]
    if len(candidate) == 2 and VR.is_valid(candidate.decode('ascii', errors='replace')):
        return TransferSyntax.ExplicitVRLittleEndian
    return TransferSyntax.ImplicitVRLittleEndian


def _python_encoding(value: str, current: str) -> str:
    """Map a Specific Character Set value to a Python codec."""
    terms = [term.strip() for term in value.split('\\')]
    try:
        return convert_encodings(terms)[0]
    except LookupError as e:
        log.warning("Unsupported Specific Character Set %r (%s), keeping %s",
                    value, e, current)
        return current


def decode(buffer: bytes, transfer_syntax: Optional[str] = None) -> DecodedFile:
    """
    Decode a DICOM byte stream into an ordered element table.

    Args:
        buffer: the whole file (bytes, bytearray or memoryview)
        transfer_syntax: force the data set transfer syntax, mainly for
            headerless streams

    Raises:
        MalformedFileError: the stream is not a readable container
    """
    data = bytes(buffer)
    if not data:
        raise MalformedFileError("Empty buffer")
    elements: Dict[str, ElementRecord] = {}
    encoding = default_encoding

    preamble = has_preamble(data)
    pos = PREAMBLE_LENGTH + len(PREFIX) if preamble else 0
    if not preamble:
        log.debug("No preamble found, reading from offset 0")

    # File meta information, always explicit VR little endian
    meta_ts = None
    while _peek_group(data, pos) == 0x0002:
        record, pos = _decode_element(data, pos, False, True, encoding)
        _add(elements, record)
        if record.tag_id == TRANSFER_SYNTAX_TAG and record.value:
            meta_ts = record.value

    ts = transfer_syntax or meta_ts
    if ts is None:
        ts = _guess_transfer_syntax(data, pos)
        log.debug("No transfer syntax declared, guessed %s", ts)
    if TransferSyntax.is_deflated(ts):
        raise MalformedFileError(f"Deflated transfer syntax {ts} is not supported")

    implicit_vr = TransferSyntax.is_implicit(ts)
    little_endian = not TransferSyntax.is_big_endian(ts)

    while pos < len(data):
        record, pos = _decode_element(data, pos, implicit_vr, little_endian, encoding)
        _add(elements, record)
        if record.tag_id == SPECIFIC_CHARACTER_SET_TAG and record.value is not None:
            encoding = _python_encoding(record.value, encoding)

    log.debug("Decoded %d elements from %d bytes (transfer syntax %s)",
              len(elements), len(data), ts)

    return DecodedFile(
        elements=elements,
        transfer_syntax=ts,
        implicit_vr=implicit_vr,
        little_endian=little_endian,
        has_preamble=preamble,
        size=len(data),
    )
