"""Command-line interface for celq.

Enables execution via ``python -m celq`` or a plain ``celq`` command
after install.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from celq import __version__
from celq.exit_codes import EXIT_USAGE

# ── Human-readable help strings ──────────────────────────────────────────────

_DESCRIPTION = """\
Evaluate a CEL expression against JSON input.

Reads newline-delimited JSON from stdin (one value per line), evaluates the
expression once per value with the value bound to 'this', and writes each
result as one line of JSON to stdout. Variables declared with --arg are
visible to the expression by name.
"""

_EPILOG = """\
Argument declarations (--arg name:type=value):
  string   any text, taken verbatim         (alias: str)
  int      base-10 64-bit signed integer    (alias: i64)
  uint     base-10 64-bit unsigned integer  (alias: u64)
  double   floating point number            (aliases: float, f64)
  bool     true or false                    (alias: boolean)
  bytes    standard base64 text
  list     JSON array literal
  map      JSON object literal
  null     null

Input modes:
  default          each non-blank line is a separate JSON document
  -s, --slurp      all of stdin is one JSON document
  -n, --null-input stdin is not read; only --arg variables are available

Exit codes:
  0  success; with --boolean, every result was true
  1  with --boolean, a result was false; otherwise a record failed to evaluate
  2  with --boolean, a record failed to evaluate or returned a non-boolean
  64 usage error: bad --arg, bad option, or the expression does not compile
  65 malformed JSON input (results before the bad line are still written)
  74 failed to write output

Examples:
  echo '["apples","bananas","blueberry"]' | celq 'this.filter(x, x.contains("a"))'
  celq -n --arg 'fruit:string=apple' 'fruit.contains("a")'
  celq -n -b --arg 'n:int=0' 'n > 0' || echo "not positive"
  cat events.jsonl | celq -j -1 -S 'this.payload'
"""


# ── Argument parser ───────────────────────────────────────────────────────────

class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors with the celq usage exit code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="celq",
        description=_DESCRIPTION,
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "expression",
        nargs="?",
        metavar="expr",
        help="CEL expression to evaluate (omit when using --from-file)",
    )
    parser.add_argument(
        "--from-file", "-f",
        type=Path,
        metavar="FILE",
        help="Read the expression from FILE instead of the command line.",
    )
    parser.add_argument(
        "--arg", "-a",
        dest="args",
        action="append",
        default=[],
        metavar="name:type=value",
        help="Declare a typed variable visible to the expression. Repeatable.",
    )
    parser.add_argument(
        "--null-input", "-n",
        action="store_true",
        help="Do not read stdin; evaluate once with only --arg variables.",
    )
    parser.add_argument(
        "--slurp", "-s",
        action="store_true",
        help="Treat all of stdin as a single JSON document.",
    )
    parser.add_argument(
        "--jobs", "-j",
        type=int,
        default=1,
        metavar="N",
        help="Number of worker threads (default 1; -1 uses every CPU).",
    )
    parser.add_argument(
        "--boolean", "-b",
        action="store_true",
        help="Set the exit code from the boolean result: true=0, false=1, error=2.",
    )
    parser.add_argument(
        "--sort-keys", "-S",
        action="store_true",
        help="Sort object keys in the output, at every nesting level.",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        metavar="DIR",
        help="Write JSONL run logs to DIR/celq.log for debugging.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


# ── Command handling ──────────────────────────────────────────────────────────

def _read_expression(args: argparse.Namespace) -> str:
    """Return the expression text from the positional argument or --from-file."""
    if args.from_file is not None:
        if args.expression is not None:
            print(
                "Error: give the expression either as an argument or with "
                "--from-file, not both",
                file=sys.stderr,
            )
            sys.exit(EXIT_USAGE)
        try:
            return args.from_file.read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read expression file: {e}", file=sys.stderr)
            sys.exit(EXIT_USAGE)

    if args.expression is None:
        print("Error: no expression given", file=sys.stderr)
        sys.exit(EXIT_USAGE)
    return args.expression


def _cmd_run(args: argparse.Namespace) -> int:
    from celq import bind_arguments, configure_logging, run
    from celq.errors import ArgumentError, ConfigError, ExpressionCompileError
    from celq.models import RunOptions

    if args.log_dir:
        configure_logging(args.log_dir)

    expression = _read_expression(args)
    try:
        options = RunOptions.from_flags(
            expression,
            bindings=bind_arguments(args.args),
            null_input=args.null_input,
            slurp=args.slurp,
            jobs=args.jobs,
            boolean=args.boolean,
            sort_keys=args.sort_keys,
        )
        result = run(options)
    except (ArgumentError, ConfigError, ExpressionCompileError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    return result.exit_code


# ── Entry point ───────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    sys.exit(_cmd_run(args))


if __name__ == "__main__":
    main()
