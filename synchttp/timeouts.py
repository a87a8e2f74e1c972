from dataclasses import dataclass, fields
from typing import Optional, Union

TimeoutTypes = Union["Timeout", float, int, None]


@dataclass(frozen=True)
class Timeout:
    """
    Deadlines in seconds; ``None`` means no limit.

    ``total`` bounds how long :meth:`HTTPClient.send` blocks waiting for the
    transport to complete. ``connect``, ``read`` and ``write`` bound the
    socket operations of :class:`H11Transport`.
    """

    total: Optional[float] = None
    connect: Optional[float] = None
    read: Optional[float] = None
    write: Optional[float] = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            seconds = float(value)
            if seconds < 0:
                raise ValueError(f"Timeout.{f.name} must not be negative, got {value!r}")
            object.__setattr__(self, f.name, seconds)

    @classmethod
    def from_value(cls, value: TimeoutTypes) -> "Timeout":
        """Accept a :class:`Timeout`, a number of seconds applied to every phase, or ``None``."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls()
        return cls(total=value, connect=value, read=value, write=value)

    def merge(self, default: Optional["Timeout"]) -> "Timeout":
        """Fill unset fields from ``default``."""
        if default is None:
            return self
        return Timeout(
            **{
                f.name: getattr(self, f.name) if getattr(self, f.name) is not None else getattr(default, f.name)
                for f in fields(self)
            }
        )
