"""
Digit-transform cipher used to obfuscate sequential integer IDs.

A value is zero-padded to a fixed width, every digit is substituted through a
table that depends on its position and the spin, and the digit positions are
then shuffled with a checksum-seeded extraction. Both stages are permutations,
so for a validated spin the mapping can be reversed exactly.

This is not cryptographically secure. It only hides insertion order and row
counts.
"""
import logging
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DIGITS: Tuple[int, ...] = tuple(range(10))


# --- Errors ---

class DraperError(ValueError):
    """Base class for all cipher errors."""


class InvalidInput(DraperError):
    """Raised for negative, non-integer or non-digit input."""


class OutOfRange(DraperError):
    """Raised in strict mode when a value does not fit in the configured width."""


class WidthMismatch(DraperError):
    """Raised when an encoded value does not have the expected width."""


class UnsafeSpin(DraperError):
    """Raised when a spin produces a substitution table that is not a permutation."""

    def __init__(self, spin: int, positions: List[int]):
        self.spin = spin
        self.positions = positions
        super().__init__(
            f"Spin {spin} is not reversible: substitution collides at positions {positions}"
        )


# --- Primitives ---

def rotate_left(sequence: Sequence, p: int) -> list:
    """Returns a new list rotated left by p places (right when p is negative)."""
    n = len(sequence)
    if n == 0:
        return []
    p %= n
    return list(sequence[p:]) + list(sequence[:p])


def zero_padding(text: str, width: int) -> str:
    """Left-pads text with zeros up to width. Longer strings pass through."""
    if len(text) < width:
        return "0" * (width - len(text)) + text
    return text


def _to_digits(text: str) -> List[int]:
    if not (text.isascii() and (text == "" or text.isdigit())):
        raise InvalidInput(f"Expected a string of decimal digits, got {text!r}")
    return [int(c) for c in text]


# --- Substitution tables ---

@lru_cache(maxsize=1024)
def swapper_map(pos: int, spin: int) -> Tuple[int, ...]:
    """
    Arithmetic substitution table for a digit position.

    Entry d is the last element of the digit alphabet rotated left by
    (pos + d) XOR spin. Only a permutation for some spins, see unsafe_positions().
    """
    return tuple(rotate_left(DIGITS, (pos + d) ^ spin)[-1] for d in DIGITS)


@lru_cache(maxsize=1024)
def drawn_swapper_map(pos: int, spin: int) -> Tuple[int, ...]:
    """
    Substitution table drawn from a shrinking alphabet.

    Each entry is extracted from whatever is left of the alphabet after rotating
    it by (pos + d) XOR spin, so the table is a permutation for any spin.
    """
    remaining = list(DIGITS)
    table = []
    for d in DIGITS:
        remaining = rotate_left(remaining, (pos + d) ^ spin)
        table.append(remaining[-1])
        remaining = remaining[:-1]
    return tuple(table)


def _table(pos: int, spin: int, drawn: bool) -> Tuple[int, ...]:
    return drawn_swapper_map(pos, spin) if drawn else swapper_map(pos, spin)


def is_bijective(table: Sequence[int]) -> bool:
    return sorted(table) == list(DIGITS)


@lru_cache(maxsize=256)
def unsafe_positions(spin: int, length: int) -> Tuple[int, ...]:
    """Positions below length whose arithmetic table has colliding entries."""
    return tuple(pos for pos in range(length) if not is_bijective(swapper_map(pos, spin)))


def check_spin(spin: int, length: int) -> None:
    """Raises UnsafeSpin if spin cannot be reversed at the given width."""
    positions = unsafe_positions(spin, length)
    if positions:
        raise UnsafeSpin(spin, list(positions))


# --- Substitution stage ---

def swap(digits: Sequence[int], spin: int, drawn: bool = False) -> List[int]:
    """Substitutes every digit through the table for its position."""
    return [_table(i, spin, drawn)[d] for i, d in enumerate(digits)]


def unswap(encoded: Sequence[int], spin: int, drawn: bool = False) -> List[int]:
    """Inverts swap(). Ties resolve to the highest matching source digit."""
    output = []
    for i, e in enumerate(encoded):
        table = _table(i, spin, drawn)
        for d in reversed(DIGITS):
            if table[d] == e:
                output.append(d)
                break
        else:
            raise InvalidInput(f"Digit {e} at position {i} has no preimage for spin {spin}")
    return output


# --- Scatter stage ---

def scatter(digits: Sequence[int], spin: int, length: int) -> List[int]:
    """
    Checksum-seeded positional shuffle.

    The working buffer is rotated left by spin XOR sum(digits) and its last
    element is emitted, length times. The checksum is taken once, up front.
    """
    if length < 0 or length > len(digits):
        raise WidthMismatch(f"Cannot scatter {length} digits out of {len(digits)}")

    shift = spin ^ sum(digits)
    remaining = list(digits)
    output = []
    for _ in range(length):
        rotated = rotate_left(remaining, shift)
        output.append(rotated[-1])
        remaining = rotated[:-1]
    return output


def unscatter(encoded: Sequence[int], spin: int) -> List[int]:
    """
    Inverts scatter().

    The checksum is recomputed from the encoded digits, which hold the same
    multiset as the input. Emitted digits are replayed last-first, each one
    appended and the buffer rotated back by the shift.
    """
    shift = spin ^ sum(encoded)
    output: List[int] = []
    for e in reversed(encoded):
        output = rotate_left(output + [e], -shift)
    return output


# --- Public entry points ---

def draperize(
    value: int,
    spin: int = 0,
    length: int = 10,
    strict: bool = False,
    drawn: bool = False,
    verify: bool = True,
) -> str:
    """
    Encodes a non-negative integer into a digit string of the given width.

    Values wider than length are encoded at their natural width (logged), or
    rejected with OutOfRange when strict is set.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"Value must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidInput(f"Value must be non-negative, got {value}")
    if length < 0:
        raise InvalidInput(f"Length must be non-negative, got {length}")
    if length == 0:
        return ""

    text = zero_padding(str(value), length)
    width = len(text)
    if width > length:
        if strict:
            raise OutOfRange(f"Value {value} does not fit in {length} digits")
        logger.warning(f"Value {value} overflows width {length}; encoding at width {width}")

    if verify and not drawn:
        check_spin(spin, width)

    digits = swap(_to_digits(text), spin, drawn=drawn)
    return "".join(str(d) for d in scatter(digits, spin, width))


def undraperize(
    encoded: str,
    spin: int = 0,
    length: Optional[int] = None,
    drawn: bool = False,
    verify: bool = True,
) -> str:
    """
    Decodes a string produced by draperize().

    Returns the zero-padded original; callers strip the leading zeros. The
    width is not stored in the output, so pass length to have it enforced.
    """
    if not isinstance(encoded, str):
        raise InvalidInput(f"Encoded value must be a string, got {type(encoded).__name__}")
    digits = _to_digits(encoded)
    if length is not None and len(digits) != length:
        raise WidthMismatch(f"Expected {length} digits, got {len(digits)}")

    if verify and not drawn:
        check_spin(spin, len(digits))

    return "".join(str(d) for d in unswap(unscatter(digits, spin), spin, drawn=drawn))
