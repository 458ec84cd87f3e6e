#!/usr/bin/env python3
"""synacor-vm command line entry point.

Usage:
    python main.py challenge.bin
    python main.py challenge.bin --verbose < input.txt
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from synacor_vm.cli import main


if __name__ == "__main__":
    sys.exit(main())
