"""
Configured ID obfuscation used by the persistence layer and the API.

Binds one cipher parameter set (spin, width, substitution table) together with
the optional random prefix, so callers can go from a sequential integer to a
public identifier and back without repeating the parameters.
"""
import random
from functools import lru_cache
from typing import Optional, Union

import config
from draper import InvalidInput, WidthMismatch, check_spin, draperize, undraperize
from prefix import add_prefix, strip_prefix


class Draperizer:
    """Obfuscates non-negative integers with a fixed parameter set."""

    def __init__(
        self,
        spin: int = 0,
        length: int = 10,
        prefix_length: int = 0,
        prefix_position: str = "before",
        strict: bool = False,
        drawn: bool = False,
        rng: Optional[random.Random] = None,
    ):
        if length < 0 or prefix_length < 0:
            raise ValueError("length and prefix_length must not be negative")
        if not drawn:
            check_spin(spin, length)
        self.spin = spin
        self.length = length
        self.prefix_length = prefix_length
        self.prefix_position = prefix_position
        self.strict = strict
        self.drawn = drawn
        self.rng = rng

    @property
    def width(self) -> int:
        """Total width of a public id that did not overflow."""
        return self.prefix_length + self.length

    def obfuscate(self, n: int) -> str:
        """Scrambles an integer and attaches the random prefix."""
        encoded = draperize(n, self.spin, self.length, strict=self.strict, drawn=self.drawn)
        return add_prefix(encoded, self.prefix_length, self.prefix_position, self.rng)

    def deobfuscate(self, public_id: Union[str, int]) -> int:
        """Reverses obfuscate(). Integer ids get their lost leading zeros back."""
        if isinstance(public_id, bool):
            raise InvalidInput("Public id must be a string or an integer")
        if isinstance(public_id, int):
            if public_id < 0:
                raise InvalidInput(f"Public id must be non-negative, got {public_id}")
            public_id = str(public_id).zfill(self.width)
        if not isinstance(public_id, str):
            raise InvalidInput("Public id must be a string or an integer")
        if public_id and not (public_id.isascii() and public_id.isdigit()):
            raise InvalidInput(f"Public id must consist of decimal digits, got {public_id!r}")

        encoded = strip_prefix(public_id, self.prefix_length, self.prefix_position)
        if len(encoded) < self.length:
            raise WidthMismatch(f"Expected at least {self.length} digits, got {len(encoded)}")
        if self.strict and len(encoded) != self.length:
            raise WidthMismatch(f"Expected {self.length} digits, got {len(encoded)}")
        return int(undraperize(encoded, self.spin, drawn=self.drawn) or "0")


@lru_cache()
def get_draperizer() -> Draperizer:
    """
    Returns a cached, singleton Draperizer built from the configuration.
    """
    return Draperizer(
        spin=config.SPIN,
        length=config.LENGTH,
        prefix_length=config.PREFIX_LENGTH,
        prefix_position=config.PREFIX_POSITION,
        strict=config.STRICT,
        drawn=config.DRAWN_TABLES,
    )


def obfuscate(n: int) -> str:
    """Scrambles a sequential integer ID to make it appear random."""
    return get_draperizer().obfuscate(n)


def deobfuscate(public_id: Union[str, int]) -> int:
    """Reverses the scrambling to retrieve the original sequential ID."""
    return get_draperizer().deobfuscate(public_id)
