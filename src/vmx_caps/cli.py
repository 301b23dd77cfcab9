"""Command line interface: print the VMX report for a CPUID dump.

Usage:
    vmx-caps < GenuineIntel00406C3_Braswell_CPUID.txt
    vmx-caps --header GenuineIntel00406C3_Braswell_CPUID.txt
"""

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from .report import VmxReport


logger = logging.getLogger(__name__)


class InputReadError(RuntimeError):
    """The dump could not be read at all."""


def read_input(path: Optional[str], stdin: Optional[TextIO] = None) -> str:
    """Read the whole dump from a file or stdin.

    Undecodable bytes are replaced rather than rejected.

    Args:
        path: Dump file path, or None (or "-") for stdin
        stdin: Stream to use instead of sys.stdin

    Returns:
        Dump text

    Raises:
        InputReadError: If the input cannot be read
    """
    try:
        if path is None or path == "-":
            stream = stdin if stdin is not None else sys.stdin
            buffer = getattr(stream, "buffer", None)
            if buffer is not None:
                return buffer.read().decode("utf-8", errors="replace")
            return stream.read()
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            return fh.read()
    except OSError as e:
        raise InputReadError(f"Cannot read {path or 'standard input'}: {e}") from e


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vmx-caps",
        description="Report VMX capabilities found in an InstLatx64 CPUID dump",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Read the dump from standard input
    vmx-caps < GenuineIntel00406C3_Braswell_CPUID.txt

    # Print vendor and model before the report
    vmx-caps --header GenuineIntel00406C3_Braswell_CPUID.txt
        """
    )

    parser.add_argument(
        "dump",
        nargs="?",
        help="Path to CPUID dump file (default: standard input)"
    )
    parser.add_argument(
        "--header",
        action="store_true",
        help="Print vendor and model name before the report"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Log parser decisions to stderr"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(format='[%(levelname)-5s] %(message)s',
                        level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        text = read_input(args.dump)
    except InputReadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report = VmxReport()
    report.load_dump(text)
    report.print_report(header=args.header)

    summary = report.get_summary()
    logger.debug("Parsed %d CPUID leaves, %d MSRs; unknown features: %s",
                 summary["cpuid_leaves"], summary["msrs"], summary["unknown"] or "none")

    return 0


if __name__ == "__main__":
    sys.exit(main())
