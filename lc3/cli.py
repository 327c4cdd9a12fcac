"""Command-line runner for LC-3 object images."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .errors import ImageError
from .image import read_image
from .runner import DEFAULT_MAX_STEPS, RunOptions, run_image

logger = logging.getLogger(__name__)


def _int_auto(text: str) -> int:
    """Parse decimal or 0x-prefixed integers."""
    return int(text, 0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lc3-run",
        description="Run an LC-3 object image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  lc3-run hello.obj\n"
               "  lc3-run 2048.obj --input wasd --max-steps 5000000\n"
               "  lc3-run prog.obj --trace 2> trace.jsonl\n",
    )
    parser.add_argument("image", type=Path, help="Object file (big-endian words)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--input", default="",
                        help="Characters fed to GETC/IN and the keyboard")
    source.add_argument("--input-file", type=Path, default=None,
                        help="Read input characters from a file")
    parser.add_argument("--start", type=_int_auto, default=0x3000,
                        help="Start address (default: 0x3000)")
    parser.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                        help=f"Instruction budget, 0 for none (default: {DEFAULT_MAX_STEPS})")
    parser.add_argument("--trace", action="store_true",
                        help="Write one JSON trace row per instruction to stderr")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Errors only")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        image = read_image(args.image)
    except (OSError, ImageError) as e:
        logger.error("Cannot load image %s: %s", args.image, e)
        return 2

    input_text = args.input
    if args.input_file is not None:
        input_text = args.input_file.read_text()

    options = RunOptions(
        start_address=args.start,
        max_steps=args.max_steps or None,
        trace=args.trace,
    )
    result = run_image(image, input_text=input_text, options=options)

    sys.stdout.write(result.output_text)
    sys.stdout.flush()
    for row in result.trace:
        sys.stderr.write(json.dumps(row) + "\n")

    if result.error is not None:
        logger.error("%s at 0x%04X: %s", result.error.type, result.error.addr, result.error.message)
    return 0 if result.status == "ok" else 1


if __name__ == "__main__":
    sys.exit(main())
