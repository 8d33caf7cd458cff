"""
Process-wide registry of tape indices that have been recorded to.

The registry lets helpers refuse to record over a tape by accident and
refuse to activate a tape that does not exist. It is shared by every helper
instance and outlives them; it is not locked, so helpers running on
different threads must not record to the same tape index.
"""
import logging
from typing import Iterator, Set

from .exceptions import DuplicateTapeError

logger = logging.getLogger(__name__)


class TapeRegistry:
    def __init__(self):
        self._tapes: Set[int] = set()

    def register(self, tape_index: int, overwrite: bool = False):
        if tape_index in self._tapes and not overwrite:
            raise DuplicateTapeError(
                f"Tape {tape_index} has already been recorded; "
                f"pass overwrite=True to record over it"
            )
        self._tapes.add(tape_index)
        logger.debug("Registered tape %d", tape_index)

    def contains(self, tape_index: int) -> bool:
        return tape_index in self._tapes

    __contains__ = contains

    def clear(self):
        self._tapes.clear()

    def __len__(self) -> int:
        return len(self._tapes)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._tapes))

    def __repr__(self):
        return f"TapeRegistry({sorted(self._tapes)})"


# Global singleton shared by all helpers
registered_tapes = TapeRegistry()
