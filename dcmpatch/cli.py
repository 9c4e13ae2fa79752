# SPDX-License-Identifier: GPL-2.0-only
"""
dcmpatch CLI - inspect and edit DICOM tags from the shell.

Usage:
    python -m dcmpatch <command> [options]

Commands:
    tags     - List the tags of a file
    edit     - Change text values and write a new file
    hexdump  - Hex dump of one element's value bytes

Examples:
    python -m dcmpatch tags ct.dcm
    python -m dcmpatch edit ct.dcm --set 00100010=SMITH^JANE -o modified.dcm
    python -m dcmpatch edit ct.dcm --set "(0010,0020)=ID7" --pad
    python -m dcmpatch hexdump ct.dcm 7FE00010
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from .element import hexdump
from .errors import DicomCodecError
from .file import EXPORT_FILENAME, TransferSyntax
from .patcher import LengthPolicy
from .session import EditSession

__all__ = ['main', 'run_command']

log = logging.getLogger("dcmpatch")

TRANSFER_SYNTAX_CHOICES = {
    'implicit': TransferSyntax.ImplicitVRLittleEndian,
    'explicit': TransferSyntax.ExplicitVRLittleEndian,
    'big': TransferSyntax.ExplicitVRBigEndian,
}


def _parse_assignment(text: str) -> Tuple[str, str]:
    tag, sep, value = text.partition('=')
    if not sep or not tag:
        raise argparse.ArgumentTypeError(f"expected TAG=VALUE, got {text!r}")
    return tag, value


def _load(args) -> EditSession:
    session = EditSession()
    session.load_file(args.file, transfer_syntax=TRANSFER_SYNTAX_CHOICES.get(args.transfer_syntax))
    return session


def run_tags(args) -> int:
    """Print the tag table."""
    session = _load(args)
    rows = session.rows()
    if args.text_only:
        rows = [row for row in rows if row.editable]

    for row in rows:
        print(f"{row.display_tag}  {row.vr:<2}  {row.keyword:<32.32}  {row.value}")

    if args.verbose:
        decoded = session.decoded
        print(f"\n{len(decoded)} elements, transfer syntax {decoded.transfer_syntax}, "
              f"preamble {'yes' if decoded.has_preamble else 'no'}")
    return 0


def run_edit(args) -> int:
    """Apply --set edits and write the result."""
    session = _load(args)
    for tag, value in args.set:
        row = session.edit(tag, value)
        log.info("%s %s = %r", row.display_tag, row.vr, value)

    policy = LengthPolicy.PAD if args.pad else LengthPolicy.STRICT
    export = session.save(args.output, policy=policy)
    log.info("Wrote %d bytes to %s (%s)", len(export.data), args.output, export.media_type)
    return 0


def run_hexdump(args) -> int:
    """Dump the value bytes of one element."""
    session = _load(args)
    record = session.decoded.get(args.tag)
    if record is None:
        log.error("Tag %s not found", args.tag)
        return 1
    print(repr(record))
    print(hexdump(session.original[record.data_offset:record.end_offset],
                  offset=record.data_offset))
    return 0


COMMANDS = {
    'tags': run_tags,
    'edit': run_edit,
    'hexdump': run_hexdump,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dcmpatch',
        description="Inspect and edit DICOM tags in place",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m dcmpatch tags ct.dcm --text-only
  python -m dcmpatch edit ct.dcm --set 00100010=SMITH^JANE -o modified.dcm
  python -m dcmpatch edit ct.dcm --set "(0010,0020)=ID7" --pad
  python -m dcmpatch hexdump ct.dcm 7FE00010
""",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", help="DICOM file to read")
    common.add_argument("--transfer-syntax", choices=sorted(TRANSFER_SYNTAX_CHOICES),
                        help="Force the data set encoding (headerless files)")

    sub = parser.add_subparsers(dest="command", required=True)

    p_tags = sub.add_parser("tags", parents=[common], help="List tags")
    p_tags.add_argument("--text-only", action="store_true", help="Only editable tags")
    p_tags.add_argument("-v", "--verbose", action="store_true", help="Print a summary")

    p_edit = sub.add_parser("edit", parents=[common], help="Edit text values")
    p_edit.add_argument("--set", action="append", type=_parse_assignment, required=True,
                        metavar="TAG=VALUE", help="Tag and new value (repeatable)")
    p_edit.add_argument("-o", "--output", default=EXPORT_FILENAME,
                        help=f"Output file (default: {EXPORT_FILENAME})")
    p_edit.add_argument("--pad", action="store_true",
                        help="Pad or truncate values to the element length instead of failing")

    p_hex = sub.add_parser("hexdump", parents=[common], help="Dump an element's bytes")
    p_hex.add_argument("tag", help="Tag, e.g. 00100010 or (0010,0010)")

    return parser


def run_command(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    try:
        return COMMANDS[args.command](args)
    except DicomCodecError as e:
        log.error("%s", e.message)
        return 1
    except OSError as e:
        log.error("%s", e)
        return 1


def main() -> int:
    return run_command(sys.argv[1:])


if __name__ == '__main__':
    sys.exit(main())
