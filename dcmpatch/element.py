# SPDX-License-Identifier: GPL-2.0-only
"""
DICOM Element records - Core building blocks.

Every element the decoder walks is described by an ElementRecord that points
back into the original byte buffer. Nothing here owns bytes; the records are
coordinates plus the decoded text of the textual VRs.

Example:
    from dcmpatch.element import Tag, VR

    Tag(0x0010, 0x0010).id        # '00100010'
    Tag('(0010,0010)').display    # '(0010,0010)'
    VR.is_text('PN')              # True
"""

import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from pydicom.datadict import dictionary_VR, keyword_for_tag

__all__ = [
    'Tag', 'VR', 'ElementRecord', 'TagRow',
    'BINARY_SENTINEL', 'hexdump', 'implicit_vr_for',
]

# Shown instead of a value for every non-textual element
BINARY_SENTINEL = 'Binary data'


# =============================================================================
# Tag Helper
# =============================================================================

class Tag:
    """DICOM Tag helper."""

    def __init__(self, group_or_combined, element=None):
        if element is not None:
            if not (isinstance(group_or_combined, int) and isinstance(element, int)):
                raise ValueError(f"Invalid tag: ({group_or_combined!r}, {element!r})")
            self.group = group_or_combined
            self.element = element
        elif isinstance(group_or_combined, Tag):
            self.group = group_or_combined.group
            self.element = group_or_combined.element
        elif isinstance(group_or_combined, tuple):
            self.group, self.element = group_or_combined
        elif isinstance(group_or_combined, int):
            self.group = (group_or_combined >> 16) & 0xFFFF
            self.element = group_or_combined & 0xFFFF
        elif isinstance(group_or_combined, bytes):
            if len(group_or_combined) != 4:
                raise ValueError(f"Invalid tag: {group_or_combined!r}")
            self.group, self.element = struct.unpack('<HH', group_or_combined)
        elif isinstance(group_or_combined, str):
            self.group, self.element = self._parse_str(group_or_combined)
        else:
            raise ValueError(f"Invalid tag: {group_or_combined}")

        if not (0 <= self.group <= 0xFFFF and 0 <= self.element <= 0xFFFF):
            raise ValueError(f"Invalid tag: {group_or_combined}")

    @staticmethod
    def _parse_str(text: str) -> Tuple[int, int]:
        """Accept '00100010', 'x00100010', '(0010,0010)' and '0010,0010'."""
        s = text.strip().strip('()').replace(' ', '')
        if s[:1] in ('x', 'X'):
            s = s[1:]
        if ',' in s:
            group, _, element = s.partition(',')
        else:
            group, element = s[:4], s[4:]
        if len(group) != 4 or len(element) != 4:
            raise ValueError(f"Invalid tag: {text!r}")
        try:
            return int(group, 16), int(element, 16)
        except ValueError:
            raise ValueError(f"Invalid tag: {text!r}") from None

    @property
    def tuple(self) -> Tuple[int, int]:
        return (self.group, self.element)

    @property
    def int(self) -> int:
        return (self.group << 16) | self.element

    @property
    def id(self) -> str:
        """8 hex digit identifier, group first."""
        return f'{self.group:04X}{self.element:04X}'

    @property
    def display(self) -> str:
        return f'({self.group:04X},{self.element:04X})'

    def encode(self, little_endian: bool = True) -> bytes:
        fmt = '<HH' if little_endian else '>HH'
        return struct.pack(fmt, self.group, self.element)

    def __eq__(self, other):
        if isinstance(other, Tag):
            return self.int == other.int
        elif isinstance(other, tuple):
            return self.tuple == other
        elif isinstance(other, int):
            return self.int == other
        return False

    def __hash__(self):
        return hash(self.int)

    def __repr__(self):
        return self.display

    @property
    def keyword(self) -> str:
        """DICOM keyword from the pydicom data dictionary."""
        return keyword_for_tag(self.int) or ''


# =============================================================================
# VR Definitions
# =============================================================================

class VR:
    """DICOM Value Representations."""

    # VRs that use 4-byte length in explicit VR encoding
    LONG_LENGTH = {'OB', 'OD', 'OF', 'OL', 'OW', 'SQ', 'UC', 'UN', 'UR', 'UT', 'OV', 'SV', 'UV'}

    # All standard VRs
    ALL = {
        'AE', 'AS', 'AT', 'CS', 'DA', 'DS', 'DT', 'FL', 'FD', 'IS', 'LO', 'LT',
        'OB', 'OD', 'OF', 'OL', 'OV', 'OW', 'PN', 'SH', 'SL', 'SQ', 'SS', 'ST',
        'SV', 'TM', 'UC', 'UI', 'UL', 'UN', 'UR', 'US', 'UT', 'UV',
    }

    # Decoded to text and editable; everything else is binary
    TEXT = {'UI', 'SH', 'LO', 'ST', 'PN', 'CS', 'DA', 'DS', 'IS'}

    @classmethod
    def uses_long_length(cls, vr: str) -> bool:
        return vr in cls.LONG_LENGTH

    @classmethod
    def is_valid(cls, vr: str) -> bool:
        return vr in cls.ALL

    @classmethod
    def is_text(cls, vr: str) -> bool:
        return vr in cls.TEXT

    @classmethod
    def padding(cls, vr: str) -> bytes:
        """Byte used to pad a value to even length."""
        return b'\x00' if vr == 'UI' else b' '


def implicit_vr_for(tag: Tag) -> str:
    """Look up the VR of an implicit VR element in the data dictionary."""
    if tag.element == 0x0000:
        # Group length
        return 'UL'
    try:
        vr = dictionary_VR(tag.int)
    except KeyError:
        return 'UN'
    # Ambiguous entries such as 'US or SS'
    return vr.split(' or ')[0]


# =============================================================================
# Element Records
# =============================================================================

@dataclass(frozen=True)
class ElementRecord:
    """
    One decoded data element.

    data_offset/length locate the value payload in the buffer the record was
    decoded from. value is None for binary elements. padding counts the
    trailing space and NUL bytes stripped from value.
    """

    tag_id: str
    vr: str
    data_offset: int
    length: int
    value: Optional[str] = None
    encoding: Optional[str] = None
    header_offset: int = 0
    undefined_length: bool = False
    padding: int = 0

    @property
    def tag(self) -> Tag:
        return Tag(self.tag_id)

    @property
    def is_binary(self) -> bool:
        return self.value is None

    @property
    def end_offset(self) -> int:
        return self.data_offset + self.length

    def to_row(self) -> 'TagRow':
        """Project into a presentation row."""
        tag = self.tag
        return TagRow(
            display_tag=tag.display,
            vr=self.vr,
            value=BINARY_SENTINEL if self.is_binary else self.value,
            raw_tag=self.tag_id,
            keyword=tag.keyword,
            editable=not self.is_binary,
        )

    def __repr__(self) -> str:
        val_repr = BINARY_SENTINEL if self.is_binary else repr(self.value)
        if len(val_repr) > 50:
            val_repr = val_repr[:47] + '...'
        return (f'ElementRecord {self.tag.display} {self.vr} '
                f'@{self.data_offset}+{self.length}: {val_repr}')


@dataclass(frozen=True)
class TagRow:
    """Presentation-only view of an ElementRecord."""

    display_tag: str
    vr: str
    value: str
    raw_tag: str
    keyword: str = ''
    editable: bool = True

    def with_value(self, value: str) -> 'TagRow':
        """Return copy with a different value."""
        return TagRow(self.display_tag, self.vr, value, self.raw_tag,
                      self.keyword, self.editable)


# =============================================================================
# Utilities
# =============================================================================

def hexdump(data: bytes, width: int = 16, offset: int = 0) -> str:
    """Format bytes as hex dump."""
    lines = []
    for i in range(0, len(data), width):
        chunk = data[i:i+width]
        hex_part = ' '.join(f'{b:02x}' for b in chunk)
        ascii_part = ''.join(chr(b) if 32 <= b < 127 else '.' for b in chunk)
        lines.append(f'{offset + i:08x}  {hex_part:<{width*3}}  {ascii_part}')
    return '\n'.join(lines)
