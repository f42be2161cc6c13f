# tomasim

A cycle-level simulator of an out-of-order, superscalar processor built on
Tomasulo's algorithm with a reorder buffer. It reads an instruction trace,
moves each instruction through fetch, dispatch, schedule, execute and
state update, and reports throughput statistics together with a
per-instruction timeline of the cycle in which each stage was reached.

## Installing

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Running

The trace is read from standard input by default, or from a file given
with `-i`:

```
tomasim -r2 -f4 -j3 -k2 -l1 < gcc.100k.trace
tomasim -i gcc.100k.trace -r2 -f4 -j3 -k2 -l1
```

Options:

| Option          | Meaning                              | Default      |
|-----------------|--------------------------------------|--------------|
| `-r R`          | Number of result buses               | 8            |
| `-j k0`         | Number of k0 functional units        | 1            |
| `-k k1`         | Number of k1 functional units        | 2            |
| `-l k2`         | Number of k2 functional units        | 3            |
| `-f N`          | Instructions fetched per cycle       | 4            |
| `-i FILE`       | Trace file to read                   | stdin        |
| `--output FILE` | Where to write the full report       | `mcf.output` |
| `-h`            | Show help                            |              |

Numeric options take the leading decimal integer of their value, and 0
when there is none. A bad option, or `-h`, prints the help and exits with
status 0; so does a trace file that cannot be opened. A configuration
that cannot run (no result buses, a fetch width below 1, a negative unit
count, or no functional units at all) is reported on standard error and
the command exits with status 1.

The command simulates until 100,000 instructions have retired or the
pipeline has drained. The processor settings and statistics are printed
to standard output, and a full report including the per-instruction
timeline is written to the `--output` file.

## Trace format

One instruction per line, five whitespace-separated fields:

```
<address in hex> <op code> <dest reg> <src reg 0> <src reg 1>
```

Op codes 0, 1 and 2 run on k0, k1 and k2 units; op code `-1` runs on a k1
unit. A register of `-1` means the operand is not used. Blank lines are
skipped, and the trace ends at the first line that cannot be decoded.

## Using it from Python

```python
from tomasim.model import ProcessorConfig
from tomasim.trace import read_trace
from tomasim.simulator import Simulator, format_report

config = ProcessorConfig(result_buses=2, k0=3, k1=2, k2=1, fetch_width=4)
simulator = Simulator(config)
with open("gcc.100k.trace") as stream:
    stats = simulator.run(read_trace(stream), 100_000)

print(stats.retired_instructions, stats.cycle_count, stats.avg_retired)
print(format_report(config, stats, simulator.timeline()))
```

- `tomasim.model` holds `Instruction`, `ProcessorConfig`, `Stats`,
  `TimelineRow` and `unit_for`, which maps an op code to its unit class.
- `tomasim.trace.parse_instruction` decodes one trace line and raises
  `TraceError` (a `ValueError`) when it is malformed; `read_trace` yields
  instructions from any iterable of lines.
- `Simulator.run` takes any iterable of instructions and an optional
  retire limit; with `None` it runs until the pipeline drains.
  `Simulator.timeline` returns one `TimelineRow` per fetch slot of the
  last run, with 0 for stages never reached.
- `tomasim.simulator.write_report` writes the same report the command
  produces to a path of your choice.
- `tomasim.cli` provides `main`, `build_parser`, `format_settings` and
  `format_statistics`.

## What it does not do

The simulator models timing only: instructions are not actually executed,
no register or memory values are computed, and there is no branch
prediction or memory hierarchy.