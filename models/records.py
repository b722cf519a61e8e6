"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar, Union

from models.errors import SampleTypeError

T = TypeVar("T")

SampleValue = Union[float, int]


class DeviceKind(str, Enum):
    """Closed set of device kinds. The value is the wire tag."""

    THERMAL = "T"
    BAROMETRIC = "P"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self][0]

    @property
    def unit(self) -> str:
        return _KIND_LABELS[self][1]

    @classmethod
    def from_tag(cls, tag: str) -> Optional["DeviceKind"]:
        if len(tag) != 1:
            return None
        try:
            return cls(tag.upper())
        except ValueError:
            return None

    def coerce(self, value: object) -> SampleValue:
        """Return ``value`` in this kind's representation or raise ``SampleTypeError``."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SampleTypeError(
                f"{self.label} samples must be numeric, got {type(value).__name__}."
            )
        if isinstance(value, float) and not math.isfinite(value):
            raise SampleTypeError(f"{self.label} samples must be finite, got {value!r}.")
        if self is DeviceKind.THERMAL:
            return float(value)
        if isinstance(value, float):
            if not value.is_integer():
                raise SampleTypeError(
                    f"{self.label} samples must be whole numbers, got {value!r}."
                )
            return int(value)
        return value


_KIND_LABELS = {
    DeviceKind.THERMAL: ("thermal", "degrees C"),
    DeviceKind.BAROMETRIC: ("barometric", "Pa"),
}


class SampleHistory(Generic[T]):
    """Append-only ordered sequence of samples.

    Iteration is lazy and restartable; every call to ``iter()`` starts again
    from the first sample. Copies never share backing storage with the source.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[T] = ()) -> None:
        self._values: List[T] = list(values)

    def append(self, value: T) -> None:
        self._values.append(value)

    def for_each(self, visitor: Callable[[T], None]) -> None:
        for value in self._values:
            visitor(value)

    def size(self) -> int:
        return len(self._values)

    def is_empty(self) -> bool:
        return not self._values

    def snapshot(self) -> Tuple[T, ...]:
        return tuple(self._values)

    def copy(self) -> "SampleHistory[T]":
        return SampleHistory(self._values)

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> "SampleHistory[T]":
        duplicate = self.copy()
        memo[id(self)] = duplicate
        return duplicate

    def __iter__(self) -> Iterator[T]:
        yield from self._values

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SampleHistory):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"SampleHistory({self._values!r})"


@dataclass(slots=True)
class DeviceRecord:
    """A registered device: identifier, kind and the samples received so far."""

    identifier: str
    kind: DeviceKind
    history: SampleHistory[SampleValue] = field(default_factory=SampleHistory)

    def __post_init__(self) -> None:
        if not isinstance(self.identifier, str) or not self.identifier:
            raise ValueError("Device identifier must be a non-empty string.")

    def __setattr__(self, name: str, value: object) -> None:
        if name == "identifier" and hasattr(self, "identifier"):
            raise AttributeError("Device identifier cannot be changed once created.")
        object.__setattr__(self, name, value)

    def add_sample(self, value: object) -> SampleValue:
        sample = self.kind.coerce(value)
        self.history.append(sample)
        return sample

    def copy(self) -> "DeviceRecord":
        return DeviceRecord(
            identifier=self.identifier, kind=self.kind, history=self.history.copy()
        )


@dataclass(slots=True, frozen=True)
class DecodedRecord:
    """A successfully decoded telemetry line."""

    kind: DeviceKind
    identifier: str
    value: SampleValue
