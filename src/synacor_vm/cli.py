"""synacor-vm command line interface.

Usage:
    synacor-vm challenge.bin
    synacor-vm challenge.bin --max-cycles 1000000 --verbose
    synacor-vm challenge.bin < commands.txt
"""

import argparse
import logging
import sys
from typing import List, Optional

from .console import Console
from .errors import ProgramLoadError, VMError
from .machine import VirtualMachine


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="synacor-vm",
        description="Run a 16-bit word program image on the virtual machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run an image interactively
    synacor-vm challenge.bin

    # Feed scripted input, cap execution length
    synacor-vm challenge.bin --max-cycles 5000000 < moves.txt
        """
    )
    parser.add_argument(
        "program",
        help="Path to program image (little-endian 16-bit words)"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=VirtualMachine.DEFAULT_MAX_CYCLES,
        help="Maximum instructions to execute. Default: unbounded"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only print program output"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging on stderr"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.max_cycles is not None and args.max_cycles <= 0:
        parser.error("--max-cycles must be positive")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )

    machine = VirtualMachine(
        console=Console(sys.stdin.buffer, sys.stdout.buffer),
        max_cycles=args.max_cycles
    )

    try:
        read = machine.load_program(args.program)
    except ProgramLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"Read {read} bytes, executing.")
        print("=" * 25)
        sys.stdout.flush()

    try:
        reason = machine.run()
    except VMError as e:
        print(f"\nExecution error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130

    logger.info("Finished: %s", reason.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
