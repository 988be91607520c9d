"""Colour values: three-component triples and per-pixel channels."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence, Tuple

from .coefficient import Coefficient, denormalize, normalize
from .errors import RangeError


@dataclass(frozen=True)
class ColorTriple:
    """Three independent colour components, each in [0, 1].

    The meaning of the components (R/G/B, H/S/L, Y/Cb/Cr, ...) is decided
    by the converter of the bitmap holding the triple, not by the triple.
    """

    first: Coefficient
    second: Coefficient
    third: Coefficient

    def __post_init__(self) -> None:
        # Frozen dataclass: coerce through object.__setattr__
        object.__setattr__(self, "first", Coefficient(self.first))
        object.__setattr__(self, "second", Coefficient(self.second))
        object.__setattr__(self, "third", Coefficient(self.third))

    def __iter__(self) -> Iterator[Coefficient]:
        return iter((self.first, self.second, self.third))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (float(self.first), float(self.second), float(self.third))

    def to_raw(self) -> bytes:
        """Serialize to three raw bytes."""
        return bytes(denormalize(c) for c in self)

    def to_plain(self) -> str:
        """Serialize to whitespace-joined decimal bytes, e.g. ``"255 0 128"``."""
        return " ".join(str(denormalize(c)) for c in self)

    def __str__(self) -> str:
        return self.to_plain()

    @classmethod
    def from_bytes(cls, first: int, second: int, third: int) -> "ColorTriple":
        """Build a triple from three byte values."""
        return cls(normalize(first), normalize(second), normalize(third))

    @classmethod
    def from_raw(cls, raw: bytes) -> "ColorTriple":
        """Build a triple from a three-byte sequence.

        Raises:
            RangeError: If raw does not hold exactly three bytes.
        """
        if len(raw) != 3:
            raise RangeError(f"Expected 3 bytes, got {len(raw)}")
        return cls.from_bytes(raw[0], raw[1], raw[2])

    def channels(self, default: "ColorTriple") -> Tuple["ColorChannel", ...]:
        """Return visible per-pixel channels falling back to ``default`` when hidden."""
        return tuple(
            ColorChannel(value, fallback) for value, fallback in zip(self, default)
        )

    @classmethod
    def from_channels(cls, channels: Sequence["ColorChannel"]) -> "ColorTriple":
        """Build a triple from the current values of three channels."""
        if len(channels) != 3:
            raise RangeError(f"Expected 3 channels, got {len(channels)}")
        return cls(channels[0].value, channels[1].value, channels[2].value)


@dataclass
class ColorChannel:
    """One colour component with a visibility flag.

    A hidden channel reads as the converter's channel default instead of
    its stored value, which is kept so the channel can be shown again.
    This is independent of the bitmap-level visibility flags.
    """

    stored: Coefficient
    default: Coefficient = field(default_factory=Coefficient)
    visible: bool = True

    def __post_init__(self) -> None:
        self.stored = Coefficient(self.stored)
        self.default = Coefficient(self.default)

    @property
    def value(self) -> Coefficient:
        return self.stored if self.visible else self.default

    def hide(self) -> None:
        self.visible = False

    def show(self) -> None:
        self.visible = True

    def toggle(self) -> None:
        self.visible = not self.visible
