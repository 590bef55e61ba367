"""
Random digit blocks concatenated with a cipher output.

The block is purely cosmetic: it hides the width of the encoded value and
cannot be decoded. Strip it with the known width before calling undraperize().
"""
import random
from typing import Optional

from draper import WidthMismatch

POSITIONS = ("before", "after")


def random_prefix(k: int, rng: Optional[random.Random] = None) -> str:
    """Returns k digits drawn uniformly from [10**(k-1), 10**k - 1]."""
    if k < 0:
        raise ValueError(f"Prefix length must be non-negative, got {k}")
    if k == 0:
        return ""
    rng = rng or random
    return str(rng.randint(10 ** (k - 1), 10 ** k - 1))


def add_prefix(
    encoded: str,
    k: int,
    position: str = "before",
    rng: Optional[random.Random] = None,
) -> str:
    if position not in POSITIONS:
        raise ValueError(f"Prefix position must be one of {POSITIONS}, got {position!r}")
    block = random_prefix(k, rng)
    return block + encoded if position == "before" else encoded + block


def strip_prefix(public_id: str, k: int, position: str = "before") -> str:
    """Removes a k-digit block added by add_prefix()."""
    if position not in POSITIONS:
        raise ValueError(f"Prefix position must be one of {POSITIONS}, got {position!r}")
    if len(public_id) < k:
        raise WidthMismatch(f"Identifier {public_id!r} is shorter than its {k}-digit prefix")
    if k == 0:
        return public_id
    return public_id[k:] if position == "before" else public_id[:-k]
