"""
Helper configuration: number type, tape buffer sizes, tape storage.
"""

import numbers
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Tuple, Union

# Tape indices: 0 is reserved as "no tape", the maximum is exclusive
INVALID_TAPE_INDEX = 0
MAX_TAPE_INDEX = 65535

# 64 MiB, chosen for finite element work with coupled vector-valued
# fields, higher order shape functions and complex constitutive laws
DEFAULT_BUFFER_SIZE = 67108864

TAPE_DIR_ENV = "AAD_HELPERS_TAPE_DIR"


class NumberTypes(Enum):
    """Which auto-differentiable number flavour a helper works with."""
    TAPED = "taped"
    TAPELESS = "tapeless"

    @property
    def is_taped(self) -> bool:
        return self is NumberTypes.TAPED


@dataclass
class TapeBufferSizes:
    """Operations, locations, values and Taylor-coefficient buffer sizes (bytes)."""
    obufsize: int = DEFAULT_BUFFER_SIZE
    lbufsize: int = DEFAULT_BUFFER_SIZE
    vbufsize: int = DEFAULT_BUFFER_SIZE
    tbufsize: int = DEFAULT_BUFFER_SIZE

    def __post_init__(self):
        for name, size in self.as_dict().items():
            if int(size) <= 0:
                raise ValueError(f"{name} must be positive, got {size}")

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.obufsize, self.lbufsize, self.vbufsize, self.tbufsize)

    def as_dict(self):
        return {
            'obufsize': self.obufsize,
            'lbufsize': self.lbufsize,
            'vbufsize': self.vbufsize,
            'tbufsize': self.tbufsize,
        }


@dataclass
class HelperConfig:
    """Shared configuration for AD helpers"""
    number_type: NumberTypes = NumberTypes.TAPED
    buffer_sizes: TapeBufferSizes = field(default_factory=TapeBufferSizes)
    tape_directory: Path = field(default_factory=lambda: HelperConfig.default_tape_directory())

    def __post_init__(self):
        self.number_type = HelperConfig.parse_number_type(self.number_type)
        self.tape_directory = Path(self.tape_directory)

    @staticmethod
    def parse_number_type(number_type: Union[str, NumberTypes]) -> NumberTypes:
        """
        Accept either a NumberTypes member or its name/value ("taped", "TAPELESS").
        """
        if isinstance(number_type, NumberTypes):
            return number_type
        key = str(number_type).strip().lower()
        for member in NumberTypes:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(
            f"Unknown number type {number_type!r}; "
            f"expected one of {[m.value for m in NumberTypes]}"
        )

    @staticmethod
    def default_tape_directory() -> Path:
        """Directory for tapes written to storage; overridable via AAD_HELPERS_TAPE_DIR."""
        return Path(os.environ.get(TAPE_DIR_ENV, "tapes"))

    @staticmethod
    def is_valid_tape_index(tape_index: int) -> bool:
        if isinstance(tape_index, bool) or not isinstance(tape_index, numbers.Integral):
            return False
        return INVALID_TAPE_INDEX < tape_index < MAX_TAPE_INDEX
