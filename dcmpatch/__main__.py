# SPDX-License-Identifier: GPL-2.0-only
"""
dcmpatch package main entry point.

This allows running the package as:
    python -m dcmpatch <command>

Which is equivalent to:
    python -m dcmpatch.cli <command>
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
