"""Reading instruction traces."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .model import Instruction


class TraceError(ValueError):
    """Raised for a trace line that cannot be decoded."""


def parse_instruction(line: str) -> Instruction:
    """Decode ``<hex address> <op> <dest> <src0> <src1>``."""
    fields = line.split()
    if len(fields) != 5:
        raise TraceError(f"expected 5 fields, got {len(fields)}: {line.strip()!r}")
    address_text, *number_texts = fields
    try:
        address = int(address_text, 16) & 0xFFFFFFFF
        op_code, dest_reg, src0, src1 = (int(text) for text in number_texts)
    except ValueError as exc:
        raise TraceError(f"malformed trace line: {line.strip()!r}") from exc
    return Instruction(address=address, op_code=op_code, dest_reg=dest_reg, src_regs=(src0, src1))


def read_trace(stream: Iterable[str]) -> Iterator[Instruction]:
    """Yield instructions from ``stream``, skipping blank lines.

    The trace ends at the first line that cannot be decoded.
    """
    for line in stream:
        if not line.strip():
            continue
        try:
            instruction = parse_instruction(line)
        except TraceError:
            return
        yield instruction