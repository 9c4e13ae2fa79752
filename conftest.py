"""
Pytest configuration for dcmpatch tests.

Provides byte-level builders for DICOM streams and ready-made sample
buffers, both hand-assembled with struct and written by pydicom.
"""
import struct
from io import BytesIO

import pytest

EXPLICIT_LE = "1.2.840.10008.1.2.1"
IMPLICIT_LE = "1.2.840.10008.1.2"
EXPLICIT_BE = "1.2.840.10008.1.2.2"

LONG_LENGTH_VRS = {'OB', 'OD', 'OF', 'OL', 'OW', 'SQ', 'UC', 'UN', 'UR', 'UT', 'OV', 'SV', 'UV'}


class Builder:
    """Assemble raw DICOM bytes without any validation."""

    @staticmethod
    def uid(value: str) -> bytes:
        raw = value.encode('ascii')
        if len(raw) % 2:
            raw += b"\x00"
        return raw

    @staticmethod
    def explicit(group, element, vr, value: bytes, little_endian=True) -> bytes:
        e = '<' if little_endian else '>'
        tag = struct.pack(e + "HH", group, element)
        if vr in LONG_LENGTH_VRS:
            return tag + vr.encode('ascii') + b"\x00\x00" + struct.pack(e + "I", len(value)) + value
        return tag + vr.encode('ascii') + struct.pack(e + "H", len(value)) + value

    @staticmethod
    def implicit(group, element, value: bytes) -> bytes:
        return struct.pack("<HHI", group, element, len(value)) + value

    @staticmethod
    def undefined_sq(group, element, items: bytes, implicit=False) -> bytes:
        """Sequence of undefined length; items must already be encoded."""
        if implicit:
            header = struct.pack("<HHI", group, element, 0xFFFFFFFF)
        else:
            header = struct.pack("<HH", group, element) + b"SQ\x00\x00" + struct.pack("<I", 0xFFFFFFFF)
        return header + items + struct.pack("<HHI", 0xFFFE, 0xE0DD, 0)

    @staticmethod
    def undefined_item(content: bytes) -> bytes:
        return (struct.pack("<HHI", 0xFFFE, 0xE000, 0xFFFFFFFF) + content
                + struct.pack("<HHI", 0xFFFE, 0xE00D, 0))

    @staticmethod
    def item(content: bytes) -> bytes:
        return struct.pack("<HHI", 0xFFFE, 0xE000, len(content)) + content

    @classmethod
    def meta(cls, transfer_syntax=EXPLICIT_LE) -> bytes:
        """File Meta Information (Group 0002), always explicit VR LE."""
        elements = (
            cls.explicit(0x0002, 0x0001, 'OB', b"\x00\x01")
            + cls.explicit(0x0002, 0x0002, 'UI', cls.uid("1.2.840.10008.5.1.4.1.1.7"))
            + cls.explicit(0x0002, 0x0003, 'UI', cls.uid("1.2.3.4.5.6.7.8.9"))
            + cls.explicit(0x0002, 0x0010, 'UI', cls.uid(transfer_syntax))
        )
        return cls.explicit(0x0002, 0x0000, 'UL', struct.pack("<I", len(elements))) + elements

    @classmethod
    def part10(cls, dataset: bytes, transfer_syntax=EXPLICIT_LE) -> bytes:
        return b"\x00" * 128 + b"DICM" + cls.meta(transfer_syntax) + dataset


@pytest.fixture
def build():
    """Fixture providing the raw byte builder."""
    return Builder


@pytest.fixture
def patient_dataset():
    """Explicit VR LE data set: textual elements, one US and pixel data."""
    b = Builder
    return (
        b.explicit(0x0008, 0x0016, 'UI', b.uid("1.2.840.10008.5.1.4.1.1.7"))
        + b.explicit(0x0008, 0x0060, 'CS', b"OT")
        + b.explicit(0x0010, 0x0010, 'PN', b"DOE^JOHN  ")
        + b.explicit(0x0010, 0x0020, 'LO', b"ID001 ")
        + b.explicit(0x0020, 0x0011, 'IS', b"1 ")
        + b.explicit(0x0028, 0x0010, 'US', struct.pack("<H", 256))
        + b.explicit(0x7FE0, 0x0010, 'OW', b"\x80" * 16)
    )


@pytest.fixture
def patient_file(patient_dataset):
    """Part 10 file wrapping patient_dataset."""
    return Builder.part10(patient_dataset)


@pytest.fixture
def pn_only():
    """Headerless data set with a single patient name element."""
    return Builder.explicit(0x0010, 0x0010, 'PN', b"DOE^JOHN  ")


def _pydicom_file(transfer_syntax):
    from pydicom.dataset import Dataset, FileDataset, FileMetaDataset
    from pydicom.uid import generate_uid

    file_meta = FileMetaDataset()
    file_meta.MediaStorageSOPClassUID = "1.2.840.10008.5.1.4.1.1.7"  # Secondary Capture
    file_meta.MediaStorageSOPInstanceUID = generate_uid()
    file_meta.TransferSyntaxUID = transfer_syntax

    ds = FileDataset("synthetic.dcm", {}, file_meta=file_meta, preamble=b"\x00" * 128)
    ds.SOPClassUID = file_meta.MediaStorageSOPClassUID
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    ds.StudyInstanceUID = generate_uid()
    ds.SeriesInstanceUID = generate_uid()
    ds.PatientName = "Test^Patient"
    ds.PatientID = "TEST001"
    ds.Modality = "OT"
    ds.StudyDate = "20240101"
    ds.SeriesNumber = 1
    ds.InstanceNumber = 1
    ds.Rows = 4
    ds.Columns = 4
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.BitsAllocated = 8
    ds.BitsStored = 8
    ds.HighBit = 7
    ds.PixelRepresentation = 0

    ref = Dataset()
    ref.ReferencedSOPClassUID = "1.2.840.10008.5.1.4.1.1.7"
    ref.ReferencedSOPInstanceUID = generate_uid()
    ds.ReferencedImageSequence = [ref]

    ds.PixelData = b"\x00" * 16

    buf = BytesIO()
    ds.save_as(buf, enforce_file_format=True)
    return buf.getvalue()


@pytest.fixture
def pydicom_file():
    """Explicit VR LE file written by pydicom."""
    return _pydicom_file(EXPLICIT_LE)


@pytest.fixture
def pydicom_implicit_file():
    """Implicit VR LE file written by pydicom."""
    return _pydicom_file(IMPLICIT_LE)
