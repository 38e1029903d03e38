"""
Sized numeric annotations.

Python has a single int and a single float type, but callers written against
fixed-width numbers (a byte, a 32-bit counter, a single-precision float) still
want the narrowing they'd get elsewhere. These aliases carry the width as
Annotated metadata so the coercion engine can apply it:

    from bindrpc import Uint8

    def brightness(level: Uint8) -> tuple[int, Exception | None]:
        ...

A JSON 300 sent for a Uint8 parameter arrives as 44. There is no range
check, the value wraps the way a fixed-width conversion does.
"""

import math
import struct
from dataclasses import dataclass
from typing import Annotated


@dataclass(frozen=True)
class IntWidth:
    bits: int
    signed: bool = True

    @property
    def kind(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.bits}"

    def wrap(self, value: int) -> int:
        """Reduce value to this width using two's complement."""
        value &= (1 << self.bits) - 1
        if self.signed and value >= 1 << (self.bits - 1):
            value -= 1 << self.bits
        return value


@dataclass(frozen=True)
class FloatWidth:
    bits: int

    @property
    def kind(self) -> str:
        return f"float{self.bits}"

    def narrow(self, value: float) -> float:
        if self.bits == 64:
            return float(value)
        # Round to single precision; values past its range become infinity.
        try:
            return struct.unpack("<f", struct.pack("<f", value))[0]
        except OverflowError:
            return math.copysign(math.inf, value)


Int8 = Annotated[int, IntWidth(8)]
Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]
Uint8 = Annotated[int, IntWidth(8, signed=False)]
Uint16 = Annotated[int, IntWidth(16, signed=False)]
Uint32 = Annotated[int, IntWidth(32, signed=False)]
Uint64 = Annotated[int, IntWidth(64, signed=False)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]
