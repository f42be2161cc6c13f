"""Command-line front end: read a trace, simulate it and report the results."""

from __future__ import annotations

import argparse
import re
import sys
from contextlib import nullcontext
from collections.abc import Sequence

from .model import ProcessorConfig, Stats
from .simulator import DEFAULT_RETIRE_LIMIT, Simulator, write_report
from .trace import read_trace

DEFAULT_REPORT = "mcf.output"

HELP_TEXT = (
    "tomasim [OPTIONS]\n"
    "  -j k0\t\tNumber of k0 FUs\n"
    "  -k k1\t\tNumber of k1 FUs\n"
    "  -l k2\t\tNumber of k2 FUs\n"
    "  -f N\t\tNumber of instructions to fetch\n"
    "  -r R\t\tNumber of result buses\n"
    "  -i traces/file.trace\n"
    "  -h\t\tThis helpful output\n"
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _lenient_int(text: str) -> int:
    """Leading decimal integer of ``text``, or 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class _Parser(argparse.ArgumentParser):
    """Argument parser that shows the short help and exits cleanly on bad usage."""

    def format_help(self) -> str:
        return HELP_TEXT

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_help()
        self.exit(0)


def build_parser() -> argparse.ArgumentParser:
    """Create the parser for the simulator's options."""
    defaults = ProcessorConfig()
    parser = _Parser(prog="tomasim")
    parser.add_argument("-r", dest="result_buses", type=_lenient_int, default=defaults.result_buses)
    parser.add_argument("-j", dest="k0", type=_lenient_int, default=defaults.k0)
    parser.add_argument("-k", dest="k1", type=_lenient_int, default=defaults.k1)
    parser.add_argument("-l", dest="k2", type=_lenient_int, default=defaults.k2)
    parser.add_argument("-f", dest="fetch_width", type=_lenient_int, default=defaults.fetch_width)
    parser.add_argument("-i", dest="input", default=None)
    parser.add_argument("--output", dest="output", default=DEFAULT_REPORT)
    return parser


def format_settings(config: ProcessorConfig) -> str:
    """Render the processor settings block, ending with a blank line."""
    return (
        "Processor Settings\n"
        f"R: {config.result_buses}\n"
        f"k0: {config.k0}\n"
        f"k1: {config.k1}\n"
        f"k2: {config.k2}\n"
        f"F: {config.fetch_width}\n"
        "\n"
    )


def format_statistics(stats: Stats) -> str:
    """Render the statistics block printed after a run."""
    return (
        "Processor stats:\n"
        f"Total instructions: {stats.retired_instructions}\n"
        f"Avg Dispatch queue size: {stats.avg_dispatch_size:f}\n"
        f"Maximum Dispatch queue size: {stats.max_dispatch_size}\n"
        f"Avg inst fired per cycle: {stats.avg_fired:f}\n"
        f"Avg inst retired per cycle: {stats.avg_retired:f}\n"
        f"Total run time (cycles): {stats.cycle_count}\n"
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the simulator from the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ProcessorConfig(
            result_buses=args.result_buses,
            k0=args.k0,
            k1=args.k1,
            k2=args.k2,
            fetch_width=args.fetch_width,
        )
    except ValueError as exc:
        print(f"tomasim: {exc}", file=sys.stderr)
        return 1

    if args.input is None:
        source = nullcontext(sys.stdin)
    else:
        try:
            source = open(args.input, encoding="utf-8")
        except OSError:
            print(f"Failed to open {args.input} for reading", file=sys.stderr)
            parser.print_help()
            return 0

    print(format_settings(config), end="")

    simulator = Simulator(config)
    with source as stream:
        stats = simulator.run(read_trace(stream), DEFAULT_RETIRE_LIMIT)

    write_report(args.output, config, stats, simulator.timeline())
    print(format_statistics(stats), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())