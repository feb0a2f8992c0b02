"""A set of enum flags combined into one integer mask."""

from __future__ import annotations

from enum import Enum


def _flag_bits(flag: object) -> int | None:
    """Return the integer bits of a flag or mask, or None for unsupported types."""
    if isinstance(flag, BitMask):
        return flag._flags
    if isinstance(flag, Enum) and isinstance(flag.value, int) and not isinstance(flag.value, bool):
        return flag.value
    return None


class BitMask:
    """An immutable combination of integer-valued enum members."""

    __slots__ = ("_flags",)

    def __init__(self, *args: object) -> None:
        flags = 0
        for flag in args:
            bits = _flag_bits(flag)
            if bits is None:
                raise TypeError(f"cannot build a bit mask from {flag!r}")
            flags |= bits
        self._flags = flags

    @classmethod
    def from_value(cls, value: int) -> BitMask:
        """Build a mask straight from its integer representation."""
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"mask value must be an int, not {type(value).__name__}")
        mask = cls()
        mask._flags = value
        return mask

    def value(self) -> int:
        """Return the integer representation of the mask."""
        return self._flags

    def __or__(self, other: object) -> BitMask:
        bits = _flag_bits(other)
        if bits is None:
            return NotImplemented
        return BitMask.from_value(self._flags | bits)

    def __ror__(self, other: object) -> BitMask:
        return self.__or__(other)

    def __and__(self, other: object) -> BitMask:
        bits = _flag_bits(other)
        if bits is None:
            return NotImplemented
        return BitMask.from_value(self._flags & bits)

    def __rand__(self, other: object) -> BitMask:
        return self.__and__(other)

    def __xor__(self, other: object) -> BitMask:
        bits = _flag_bits(other)
        if bits is None:
            return NotImplemented
        return BitMask.from_value(self._flags ^ bits)

    def __rxor__(self, other: object) -> BitMask:
        return self.__xor__(other)

    def __invert__(self) -> BitMask:
        return BitMask.from_value(~self._flags)

    def __bool__(self) -> bool:
        return self._flags != 0

    def __eq__(self, other: object) -> bool:
        bits = _flag_bits(other)
        if bits is None:
            return NotImplemented
        return self._flags == bits

    def __hash__(self) -> int:
        return hash(self._flags)

    def __repr__(self) -> str:
        return f"BitMask.from_value({self._flags:#x})"