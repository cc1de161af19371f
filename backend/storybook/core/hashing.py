"""Deterministic hashing helpers shared by profiling and image selection.

All values here must be reproducible across runs and processes, so nothing
uses Python's salted ``hash()``.
"""

_INT32_MASK = 0xFFFFFFFF

# Numerical Recipes LCG constants.
_LCG_A = 1664525
_LCG_C = 1013904223


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - (1 << 32) if value & 0x80000000 else value


def rolling_hash(text: str) -> int:
    """32-bit signed rolling hash: ``h = h * 31 + ord(c)`` with int32 wraparound."""
    h = 0
    for char in text:
        h = _to_int32(h * 31 + ord(char))
    return h


def hash_hex(text: str) -> str:
    """Absolute value of :func:`rolling_hash` as lowercase hex."""
    return format(abs(rolling_hash(text)), "x")


def seeded_sequence(seed: int, length: int) -> list[float]:
    """Return ``length`` floats in [0, 1) from a 32-bit LCG seeded with ``seed``."""
    state = seed & _INT32_MASK
    values: list[float] = []
    for _ in range(length):
        state = (_LCG_A * state + _LCG_C) & _INT32_MASK
        values.append(state / 2**32)
    return values
