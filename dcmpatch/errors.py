# SPDX-License-Identifier: GPL-2.0-only
"""
Exception classes for dcmpatch.

The decoder raises MalformedFileError, the patcher raises the EditError
family, and EditSession raises SessionError when used before a file is
loaded. All of them derive from DicomCodecError.
"""

from typing import Optional

__all__ = [
    'DicomCodecError',
    'MalformedFileError',
    'EditError',
    'UnknownTagError',
    'BinaryElementError',
    'LengthMismatchError',
    'ValueEncodingError',
    'SessionError',
]


class DicomCodecError(Exception):
    """Base exception for all dcmpatch errors."""

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)


class MalformedFileError(DicomCodecError):
    """
    Raised when the byte stream is not a readable DICOM container.

    - tag, VR or length field truncated
    - value length runs past the end of the buffer
    - undefined length value without its delimiter
    - duplicate tag in the data set
    - data set encoded with an unsupported (deflated) transfer syntax
    """

    def __init__(self, message: str = "", offset: Optional[int] = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)


class EditError(DicomCodecError):
    """Base class for rejected edits."""

    def __init__(self, tag_id: str, message: str = ""):
        self.tag_id = tag_id
        super().__init__(message)


class UnknownTagError(EditError):
    """The edit names a tag that is not in the current element table."""

    def __init__(self, tag_id: str):
        super().__init__(tag_id, f"Unknown tag {tag_id}: not present in the element table")


class BinaryElementError(EditError):
    """The edit targets an element that has no textual value."""

    def __init__(self, tag_id: str, vr: str):
        self.vr = vr
        super().__init__(tag_id, f"Tag {tag_id} ({vr}) is binary and cannot be edited")


class LengthMismatchError(EditError):
    """Encoded value length differs from the element's declared length."""

    def __init__(self, tag_id: str, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            tag_id,
            f"Tag {tag_id}: new value encodes to {actual} bytes, "
            f"element length is {expected}",
        )


class ValueEncodingError(EditError):
    """The new text cannot be represented in the element's character set."""

    def __init__(self, tag_id: str, encoding: str):
        self.encoding = encoding
        super().__init__(tag_id, f"Tag {tag_id}: value cannot be encoded as {encoding}")


class SessionError(DicomCodecError):
    """Operation needs a loaded file."""
    pass
