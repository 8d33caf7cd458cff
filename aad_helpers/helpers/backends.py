"""
Backends: the bridge between a helper and the AD numbers it hands out.

A backend knows how to
  (a) build a tracked number from a plain scalar and its index,
  (b) start/stop/activate a tape and report whether one is active,
  (c) bind dependent variables,
  (d) evaluate values, gradients and Hessians at the helper's current
      independent-variable values.

TapedBackend records ADVar operations on an aad Tape and replays it;
TapelessBackend hands out TVar numbers that carry their own derivatives.
"""
import logging
import numbers
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from ..aad.core import tape as tape_mod
from ..aad.core.engine import edge_push_hessian, gradient
from ..aad.core.graph_utils import get_graph_stats, print_graph_summary
from ..aad.core.var import ADVar
from ..aad.taylor import TVar
from .config import NumberTypes
from .exceptions import UnknownTapeError

logger = logging.getLogger(__name__)


class Backend(ABC):
    number_type: NumberTypes

    @property
    def is_taped(self) -> bool:
        return self.number_type.is_taped

    @abstractmethod
    def make_independent(self, value: float, index: int, n_independent: int):
        """Tracked number for independent variable `index`."""

    @abstractmethod
    def make_constant(self, value: float):
        """Untracked number of the backend's flavour."""

    @abstractmethod
    def coerce_dependent(self, expression):
        """Validate a dependent-variable expression; plain numbers become constants."""

    def start_taping(self, tape_index: int, keep_values: bool,
                     buffer_sizes: Optional[Tuple[int, int, int, int]]):
        pass

    def stop_taping(self, write_to_storage: bool, directory: Path) -> Optional[Path]:
        return None

    def abort(self):
        """Drop any in-progress recording (used by reset)."""

    def recording_in_progress(self) -> bool:
        """True while any helper of this flavour holds the process-wide recording."""
        return False

    def recorded_shape(self, tape_index: int) -> Tuple[int, int]:
        """(n_independent, n_dependent) recorded on `tape_index`."""
        raise UnknownTapeError(f"{self.number_type.value} numbers do not record tapes")

    def activate(self, tape_index: int):
        pass

    def is_tape_active(self) -> bool:
        return False

    def register_dependent(self, index: int, expression):
        return expression

    @abstractmethod
    def value(self, dependents: Sequence, index: int, values: np.ndarray) -> float: ...

    @abstractmethod
    def gradient(self, dependents: Sequence, index: int, values: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def hessian(self, dependents: Sequence, index: int, values: np.ndarray) -> np.ndarray: ...

    def tape_stats(self, tape_index: int) -> Dict:
        return {}

    def print_tape_stats(self, tape_index: int, stream=None):
        stream = stream if stream is not None else sys.stdout
        stream.write(f"No tape statistics: {self.number_type.value} numbers do not record tapes\n")


class TapedBackend(Backend):
    number_type = NumberTypes.TAPED

    def __init__(self):
        self._tape: Optional[tape_mod.Tape] = None
        self._recording = False

    @property
    def tape(self) -> Optional[tape_mod.Tape]:
        return self._tape

    def make_independent(self, value, index, n_independent):
        var = ADVar(value, requires_grad=True, name=f"x{index}")
        if self._recording:
            self._tape.register_independent(index, var)
        return var

    def make_constant(self, value):
        return ADVar(value, requires_grad=False)

    def coerce_dependent(self, expression):
        if isinstance(expression, ADVar):
            return expression
        if isinstance(expression, numbers.Real) and not isinstance(expression, bool):
            return ADVar(expression, requires_grad=False, name="const")
        raise TypeError(
            f"Taped helpers expect ADVar dependent variables, got {type(expression).__name__}"
        )

    def start_taping(self, tape_index, keep_values, buffer_sizes):
        self._tape = tape_mod.trace_on(tape_index, keep_values=keep_values,
                                       buffer_sizes=buffer_sizes)
        self._recording = True

    def stop_taping(self, write_to_storage, directory):
        tape = tape_mod.trace_off()
        self._recording = False
        if write_to_storage:
            return tape.save(Path(directory) / f"tape_{tape.index}.pkl")
        return None

    def abort(self):
        if self._recording:
            tape_mod.trace_abort()
            self._recording = False
        self._tape = None

    def recording_in_progress(self):
        return tape_mod.is_tracing()

    def _recorded(self, tape_index):
        if not tape_mod.has_tape(tape_index):
            raise UnknownTapeError(f"Tape {tape_index} is registered but holds no recording")
        return tape_mod.get_tape(tape_index)

    def recorded_shape(self, tape_index):
        tape = self._recorded(tape_index)
        return tape.n_independents, tape.n_dependents

    def activate(self, tape_index):
        self._tape = self._recorded(tape_index)
        logger.debug("Tape %d active for re-evaluation", tape_index)

    def is_tape_active(self):
        return self._tape is not None

    def register_dependent(self, index, expression):
        if self._recording:
            self._tape.register_dependent(index, expression)
        return expression

    def _evaluate_at(self, values):
        self._tape.replay(values)
        return self._tape

    def value(self, dependents, index, values):
        tape = self._evaluate_at(values)
        return float(tape.dependents[index].val)

    def gradient(self, dependents, index, values):
        tape = self._evaluate_at(values)
        return gradient(tape, tape.dependents[index], tape.ordered_independents())

    def hessian(self, dependents, index, values):
        tape = self._evaluate_at(values)
        return edge_push_hessian(tape, tape.dependents[index], tape.ordered_independents())

    def tape_stats(self, tape_index):
        tape = self._recorded(tape_index)
        stats = get_graph_stats(tape)
        stats.update(
            tape_index=tape.index,
            n_independent_variables=tape.n_independents,
            n_dependent_variables=tape.n_dependents,
            keep_values=tape.keep_values,
            buffer_sizes=tape.buffer_sizes,
        )
        return stats

    def print_tape_stats(self, tape_index, stream=None):
        stream = stream if stream is not None else sys.stdout
        tape = self._recorded(tape_index)
        stream.write(f"Tape {tape.index}: {tape.n_independents} independent, "
                     f"{tape.n_dependents} dependent variables\n")
        if tape.buffer_sizes is not None:
            obuf, lbuf, vbuf, tbuf = tape.buffer_sizes
            stream.write(f"Buffer sizes: obufsize={obuf} lbufsize={lbuf} "
                         f"vbufsize={vbuf} tbufsize={tbuf}\n")
        print_graph_summary(tape, stream)


class TapelessBackend(Backend):
    number_type = NumberTypes.TAPELESS

    def make_independent(self, value, index, n_independent):
        return TVar.independent(value, index, n_independent)

    def make_constant(self, value):
        return TVar(value)

    def coerce_dependent(self, expression):
        if isinstance(expression, TVar):
            return expression
        if isinstance(expression, numbers.Real) and not isinstance(expression, bool):
            return TVar(expression)
        raise TypeError(
            f"Tapeless helpers expect TVar dependent variables, got {type(expression).__name__}"
        )

    def value(self, dependents, index, values):
        return float(dependents[index].v0)

    def gradient(self, dependents, index, values):
        return dependents[index].gradient(len(values))

    def hessian(self, dependents, index, values):
        return dependents[index].hessian(len(values))


def make_backend(number_type: NumberTypes) -> Backend:
    if number_type is NumberTypes.TAPED:
        return TapedBackend()
    return TapelessBackend()
