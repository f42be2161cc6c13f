"""Cycle-level simulation of an out-of-order Tomasulo pipeline."""

from __future__ import annotations

import struct
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path

from .model import NO_REGISTER, Instruction, ProcessorConfig, Stats, TimelineRow, unit_for

DEFAULT_RETIRE_LIMIT = 100_000


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _ratio(numerator: int, denominator: int) -> float:
    """Single-precision quotient, as the statistics are kept in 32-bit floats."""
    return _f32(_f32(numerator) / _f32(denominator))


@dataclass(eq=False)
class _RobEntry:
    tag: int
    instruction: Instruction
    producers: tuple["_RobEntry | None", "_RobEntry | None"]
    finished: bool = False


@dataclass(eq=False)
class _Station:
    entry: _RobEntry | None = None
    unit: int = 0
    valid: bool = False
    next_valid: bool = False
    busy: list[bool] = field(default_factory=lambda: [False, False])
    next_busy: list[bool] = field(default_factory=lambda: [False, False])
    blocking: list[int | None] = field(default_factory=lambda: [None, None])
    executed: bool = False

    @property
    def tag(self) -> int:
        return self.entry.tag if self.entry is not None else 0


class Simulator:
    """Fetch, dispatch, schedule, execute and state-update stages of one core."""

    def __init__(self, config: ProcessorConfig) -> None:
        self.config = config
        self._reset()

    def _reset(self) -> None:
        size = self.config.scheduling_queue_size()
        self._stations = [_Station() for _ in range(size)]
        self._valid_register = [False] * size
        self._dispatch_queue: deque[_RobEntry] = deque()
        self._rob: deque[_RobEntry] = deque()
        self._last_writer: dict[int, _RobEntry] = {}
        self._result_bus: deque[_Station] = deque()
        self._free_units = list(self.config.unit_counts())
        self._rows: dict[int, TimelineRow] = {}
        self._next_tag = 1
        self._fetched = 0
        self._cycle = 1
        self._retired = 0
        self._fired = 0
        self._max_dispatch = 0

    def run(self, instructions: Iterable[Instruction], retire_limit: int | None = None) -> Stats:
        """Simulate until ``retire_limit`` instructions retire or the pipeline drains."""
        self._reset()
        source = iter(instructions)
        pending: list[Instruction] = []
        fetching = True
        dispatching = False
        dispatch_total = 0
        while True:
            self._update_state()
            self._execute()
            self._schedule()
            if dispatching:
                self._dispatch(pending)
            dispatch_total += len(self._dispatch_queue)
            if fetching:
                block, fetching = self._fetch(source)
                if fetching:
                    pending = block
                dispatching = fetching
            else:
                dispatching = False
            self._cycle += 1
            if retire_limit is not None and self._retired >= retire_limit:
                break
            if not fetching and not self._dispatch_queue and not self._rob:
                break
        cycles = self._cycle - 1
        return Stats(
            retired_instructions=self._retired,
            cycle_count=cycles,
            max_dispatch_size=self._max_dispatch,
            avg_dispatch_size=_ratio(dispatch_total, cycles),
            avg_fired=_ratio(self._fired, cycles),
            avg_retired=_ratio(self._retired, cycles),
        )

    def timeline(self) -> list[TimelineRow]:
        """Per-instruction stage cycles of the last run, in fetch order."""
        return [replace(self._rows[number]) for number in sorted(self._rows)]

    def _fetch(self, source: Iterator[Instruction]) -> tuple[list[Instruction], bool]:
        block: list[Instruction] = []
        ok = False
        for _ in range(self.config.fetch_width):
            instruction = next(source, None)
            ok = instruction is not None
            if instruction is not None:
                block.append(instruction)
            self._fetched += 1
            self._rows[self._fetched] = TimelineRow(number=self._fetched, fetch=self._cycle)
        return block, ok

    def _dispatch(self, block: list[Instruction]) -> None:
        for instruction in block:
            producers = tuple(
                self._last_writer.get(src) if src != NO_REGISTER else None
                for src in instruction.src_regs
            )
            entry = _RobEntry(tag=self._next_tag, instruction=instruction, producers=producers)
            self._dispatch_queue.append(entry)
            self._rob.append(entry)
            if instruction.dest_reg != NO_REGISTER:
                self._last_writer[instruction.dest_reg] = entry
            self._rows[entry.tag].dispatch = self._cycle
            self._next_tag += 1
        self._max_dispatch = max(self._max_dispatch, len(self._dispatch_queue))

    def _free_station(self) -> int | None:
        return next((slot for slot, station in enumerate(self._stations) if not station.valid), None)

    def _schedule(self) -> None:
        while self._dispatch_queue:
            slot = self._free_station()
            if slot is None:
                break
            entry = self._dispatch_queue.popleft()
            station = _Station(
                entry=entry,
                unit=unit_for(entry.instruction.op_code),
                valid=True,
                next_valid=True,
            )
            for operand, producer in enumerate(entry.producers):
                if producer is not None and not producer.finished:
                    station.busy[operand] = True
                    station.next_busy[operand] = True
                    station.blocking[operand] = producer.tag
            self._stations[slot] = station
            self._valid_register[slot] = True
            self._rows[entry.tag].schedule = self._cycle

    def _execute(self) -> None:
        ready = sorted(
            (
                station
                for station in self._stations
                if station.valid and not any(station.busy) and not station.executed
            ),
            key=lambda station: station.tag,
        )
        for station in ready:
            if self._free_units[station.unit] == 0:
                continue
            station.executed = True
            self._fired += 1
            self._free_units[station.unit] -= 1
            self._rows[station.tag].execute = self._cycle
            self._result_bus.append(station)

    def _wake_up(self, tag: int) -> None:
        for station in self._stations:
            if not station.valid or station.executed:
                continue
            for operand in (0, 1):
                if station.blocking[operand] == tag and station.busy[operand]:
                    station.next_busy[operand] = False

    def _update_state(self) -> None:
        for slot, station in enumerate(self._stations):
            for operand in (0, 1):
                if station.busy[operand] and not station.next_busy[operand] and station.valid:
                    station.busy[operand] = False
            if not self._valid_register[slot]:
                station.valid = False
            if not station.next_valid:
                self._valid_register[slot] = False

        for _ in range(self.config.result_buses):
            if not self._result_bus:
                break
            station = self._result_bus.popleft()
            station.next_valid = False
            station.entry.finished = True
            self._free_units[station.unit] += 1
            self._wake_up(station.tag)
            self._rows[station.tag].state_update = self._cycle

        while self._rob and self._rob[0].finished:
            self._rob.popleft()
            self._retired += 1


def format_report(config: ProcessorConfig, stats: Stats, timeline: Iterable[TimelineRow]) -> str:
    """Render settings, the per-instruction timeline and the statistics."""
    lines = [
        "Processor Settings",
        f"R: {config.result_buses}",
        f"k0: {config.k0}",
        f"k1: {config.k1}",
        f"k2: {config.k2}",
        f"F: {config.fetch_width}",
        "",
        "INST\tFETCH\tDISP\tSCHED\tEXEC\tSTATE",
    ]
    lines.extend(
        "\t".join(
            str(value)
            for value in (row.number, row.fetch, row.dispatch, row.schedule, row.execute, row.state_update)
        )
        for row in timeline
    )
    lines.extend(
        [
            "",
            "Processor stats:",
            f"Total instructions: {stats.retired_instructions}",
            f"Avg Dispatch queue size: {stats.avg_dispatch_size:.6f}",
            f"Maximum Dispatch queue size: {stats.max_dispatch_size}",
            f"Avg inst fired per cycle: {stats.avg_fired:.6f}",
            f"Avg inst retired per cycle: {stats.avg_retired:.6f}",
            f"Total run time (cycles): {stats.cycle_count}",
        ]
    )
    return "\n".join(lines) + "\n"


def write_report(
    path: str | Path, config: ProcessorConfig, stats: Stats, timeline: Iterable[TimelineRow]
) -> None:
    """Write :func:`format_report` output to ``path``."""
    Path(path).write_text(format_report(config, stats, timeline), encoding="utf-8")