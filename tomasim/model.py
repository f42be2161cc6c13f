"""Core data types shared by the trace reader and the simulator."""

from __future__ import annotations

from dataclasses import dataclass

NO_REGISTER = -1
UNIT_CLASSES = 3


def unit_for(op_code: int) -> int:
    """Return the functional-unit class that executes ``op_code``.

    Op code -1 runs on a k1 unit; op codes 0, 1 and 2 run on k0, k1 and k2.
    """
    if op_code == -1:
        return 1
    if 0 <= op_code < UNIT_CLASSES:
        return op_code
    raise ValueError(f"unsupported op code {op_code}")


@dataclass(frozen=True)
class Instruction:
    """One decoded trace instruction."""

    address: int
    op_code: int
    dest_reg: int
    src_regs: tuple[int, int]


@dataclass(frozen=True)
class ProcessorConfig:
    """Machine parameters: result buses, unit counts per class and fetch width."""

    result_buses: int = 8
    k0: int = 1
    k1: int = 2
    k2: int = 3
    fetch_width: int = 4

    def __post_init__(self) -> None:
        if self.result_buses < 1:
            raise ValueError("at least one result bus is required")
        if self.fetch_width < 1:
            raise ValueError("fetch width must be at least 1")
        if min(self.unit_counts()) < 0:
            raise ValueError("functional unit counts must not be negative")
        if sum(self.unit_counts()) < 1:
            raise ValueError("at least one functional unit is required")

    def scheduling_queue_size(self) -> int:
        """Number of reservation-station slots: twice the total unit count."""
        return 2 * sum(self.unit_counts())

    def unit_counts(self) -> tuple[int, int, int]:
        """Functional unit counts for classes k0, k1 and k2."""
        return (self.k0, self.k1, self.k2)


@dataclass
class Stats:
    """Summary figures of one simulation run."""

    retired_instructions: int = 0
    cycle_count: int = 0
    max_dispatch_size: int = 0
    avg_dispatch_size: float = 0.0
    avg_fired: float = 0.0
    avg_retired: float = 0.0


@dataclass
class TimelineRow:
    """Cycle in which one instruction passed each pipeline stage (0 if never)."""

    number: int = 0
    fetch: int = 0
    dispatch: int = 0
    schedule: int = 0
    execute: int = 0
    state_update: int = 0