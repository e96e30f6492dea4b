from enum import IntEnum
from typing import Union

from ..core.exceptions import InvalidArgumentError


class ReductionMode(IntEnum):
    """Loss reduction, numbered like ``torch.nn._reduction``."""
    NONE = 0
    MEAN = 1
    SUM = 2

    @classmethod
    def coerce(cls, value: Union['ReductionMode', int, str]) -> 'ReductionMode':
        """Accept a member, its integer value, or 'none'/'mean'/'sum'."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                pass
        elif isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        raise InvalidArgumentError(
            "Unknown reduction mode", context={'reduction': repr(value)}
        )
