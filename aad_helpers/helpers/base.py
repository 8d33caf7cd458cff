"""
Base AD helper: tape lifecycle, independent/dependent variable bookkeeping
and the recording state machine.

The helper evaluates derivatives of user-defined dependent variables f(X)
with respect to independent variables X. Code using it takes one of two
shapes. With tapeless numbers the simplest form is

    helper = ADHelperScalarFunction(n, number_type="tapeless")
    helper.start_recording(1)
    helper.set_independent_variables(values)
    x = helper.get_sensitive_variables()
    helper.register_dependent_variable(0, f(x))
    helper.stop_recording()
    grad = helper.compute_gradient()

With taped numbers the recorded tape can be reused at new points:

    if not helper.is_registered_tape(tape_index):
        helper.start_recording(tape_index)
        ...                                  # same steps as above
        helper.stop_recording()
    else:
        helper.activate_tape(tape_index)
        helper.set_independent_variables(new_values)
    grad = helper.compute_gradient()

Independent variables must be marked in the same order every time a tape
is recorded; violating that order is not detected here.

Taped numbers are not thread safe: use one tape index per thread.
"""
import logging
import sys
import warnings
from dataclasses import replace
from typing import List, Optional, Sequence, Union

import numpy as np

from .backends import Backend, make_backend
from .config import INVALID_TAPE_INDEX, MAX_TAPE_INDEX, HelperConfig, NumberTypes, TapeBufferSizes
from .exceptions import (
    AlreadyMarkedError,
    AlreadyRegisteredError,
    DuplicateTapeError,
    IncompleteRegistrationError,
    IndexOutOfRangeError,
    InvalidTapeIndexError,
    RecordingStateError,
    UnknownTapeError,
)
from .registry import registered_tapes
from .state import HelperState, RecordingStateMachine

logger = logging.getLogger(__name__)


class ADHelperBase:
    """
    Bookkeeping shared by all AD helpers.

    Attributes:
        config (HelperConfig): number type, buffer sizes, tape directory
        backend (Backend): taped or tapeless number backend
        independent_variable_values (np.ndarray): point X at which f is evaluated
        independent_variables (list): sensitive counterparts of X (None until marked)
        dependent_variables (list): registered expressions f_i (None until registered)
    """

    def __init__(self, n_independent_variables: int, n_dependent_variables: int,
                 number_type: Union[str, NumberTypes, None] = None,
                 config: Optional[HelperConfig] = None):
        """
        Args:
            n_independent_variables: number of inputs X
            n_dependent_variables: number of scalar functions f
            number_type: "taped" or "tapeless" (overrides config.number_type)
            config: optional HelperConfig
        """
        config = config if config is not None else HelperConfig()
        if number_type is not None:
            config = replace(config, number_type=HelperConfig.parse_number_type(number_type))
        self.config = config
        self.backend: Backend = make_backend(self.config.number_type)
        self._machine = RecordingStateMachine()
        self._n_independent = 0
        self._n_dependent = 0
        self._active_tape = INVALID_TAPE_INDEX
        self._keep_values = True
        self._use_stored_buffer_sizes = False
        self.buffer_sizes = TapeBufferSizes(**self.config.buffer_sizes.as_dict())
        self._resize(n_independent_variables, n_dependent_variables)

    def __repr__(self):
        return (f"{type(self).__name__}(n_independent={self._n_independent}, "
                f"n_dependent={self._n_dependent}, "
                f"number_type={self.config.number_type.value}, state={self.state.value})")

    # ------------------------------------------------------------------ #
    # Interrogation
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> HelperState:
        return self._machine.state

    @property
    def number_type(self) -> NumberTypes:
        return self.config.number_type

    def n_independent_variables(self) -> int:
        return self._n_independent

    def n_dependent_variables(self) -> int:
        return self._n_dependent

    def is_recording(self) -> bool:
        return self.state is HelperState.RECORDING

    def active_tape(self) -> int:
        return self._active_tape

    def is_registered_tape(self, tape_index: int) -> bool:
        return registered_tapes.contains(tape_index)

    def print(self, stream=None):
        """Write the status of all queryable data to `stream` (default stdout)."""
        stream = stream if stream is not None else sys.stdout
        stream.write(f"number type: {self.number_type.value}\n")
        stream.write(f"state: {self.state.value}\n")
        stream.write(f"n_independent_variables: {self._n_independent}\n")
        stream.write(f"n_dependent_variables: {self._n_dependent}\n")
        stream.write(f"active tape: {self._active_tape}\n")
        stream.write(f"registered tapes: {list(registered_tapes)}\n")
        stream.write(f"keep values: {self._keep_values}\n")
        if self.backend.is_taped:
            stream.write(f"use stored buffer sizes: {self._use_stored_buffer_sizes}\n")
            for name, size in self.buffer_sizes.as_dict().items():
                stream.write(f"{name}: {size}\n")
        stream.write("registered independent variable values: "
                     f"{_flags(self._registered_values)}\n")
        stream.write("marked independent variables: "
                     f"{_flags(self._marked)}\n")
        stream.write("registered dependent variables: "
                     f"{_flags(self._registered_dependents)}\n")
        self.print_values(stream)

    def print_values(self, stream=None):
        """Write the values currently assigned to the independent variables."""
        stream = stream if stream is not None else sys.stdout
        stream.write("independent variable values: "
                     + " ".join(f"{v:.16g}" for v in self.independent_variable_values)
                     + "\n")

    def print_tape_stats(self, tape_index: int, stream=None):
        """Write usage statistics of a recorded tape (taped numbers only)."""
        self._check_tape_index(tape_index)
        if self.backend.is_taped and not self.is_registered_tape(tape_index):
            raise UnknownTapeError(f"Tape {tape_index} has not been recorded")
        self.backend.print_tape_stats(tape_index, stream)

    def tape_stats(self, tape_index: int) -> dict:
        self._check_tape_index(tape_index)
        if self.backend.is_taped and not self.is_registered_tape(tape_index):
            raise UnknownTapeError(f"Tape {tape_index} has not been recorded")
        return self.backend.tape_stats(tape_index)

    # ------------------------------------------------------------------ #
    # Reset / configuration
    # ------------------------------------------------------------------ #
    def reset(self, n_independent_variables: Optional[int] = None,
              n_dependent_variables: Optional[int] = None,
              clear_registered_tapes: bool = True):
        """
        Return to the initial Idle state.

        Clears every registration flag and stored value, deactivates the tape
        and, optionally, resizes the variable sets. With
        `clear_registered_tapes` the process-wide tape registry is emptied too.
        """
        n_ind = self._n_independent if n_independent_variables is None else n_independent_variables
        n_dep = self._n_dependent if n_dependent_variables is None else n_dependent_variables
        _check_count(n_ind, "independent")
        _check_count(n_dep, "dependent")
        self.backend.abort()
        if clear_registered_tapes:
            registered_tapes.clear()
        self._machine.reset()
        self._active_tape = INVALID_TAPE_INDEX
        self._keep_values = True
        self._resize(n_ind, n_dep)
        logger.debug("Reset %r", self)

    def set_tape_buffer_sizes(self, obufsize: int = 67108864, lbufsize: int = 67108864,
                              vbufsize: int = 67108864, tbufsize: int = 67108864):
        """
        Set the buffer sizes used by the next recorded tape.

        Only meaningful for taped numbers; must be called before
        start_recording() to have any influence.
        """
        self._machine.require(HelperState.IDLE, HelperState.READY, action="set_tape_buffer_sizes")
        sizes = TapeBufferSizes(obufsize, lbufsize, vbufsize, tbufsize)
        if not self.backend.is_taped:
            warnings.warn("Tape buffer sizes have no effect on tapeless numbers", stacklevel=2)
            return
        self.buffer_sizes = sizes
        self._use_stored_buffer_sizes = True

    # ------------------------------------------------------------------ #
    # Recording state machine
    # ------------------------------------------------------------------ #
    def start_recording(self, tape_index: int, overwrite: bool = False,
                        keep_values: bool = True) -> bool:
        """
        Enable recording mode for `tape_index`.

        Operations performed between this call and stop_recording() with the
        sensitive variables are recorded to the tape (taped numbers) or
        differentiated on the fly (tapeless numbers).

        Args:
            tape_index: tape to record to; must lie in (0, 65535)
            overwrite: allow recording over an already registered tape
            keep_values: the values set while recording are the evaluation
                point; if False they are dummies and must be set again before
                any value or derivative is extracted

        Returns:
            True once recording is under way.
        """
        self._machine.require(HelperState.IDLE, HelperState.READY, action="start_recording")
        self._check_tape_index(tape_index)
        if self.backend.is_taped and not overwrite and self.is_registered_tape(tape_index):
            raise DuplicateTapeError(
                f"Tape {tape_index} has already been recorded; pass overwrite=True to record over it"
            )
        if self.backend.recording_in_progress():
            raise RecordingStateError(
                "Another helper is recording; only one tape can record at a time"
            )

        self._reset_registered_independent_variables()
        self._reset_registered_dependent_variables()
        self._finalized = False
        self._keep_values = keep_values
        buffer_sizes = self.buffer_sizes.as_tuple() if self._use_stored_buffer_sizes else None
        self.backend.start_taping(tape_index, keep_values, buffer_sizes)
        self._active_tape = tape_index
        self._machine.transition(HelperState.RECORDING)
        logger.debug("Recording tape %d (%s)", tape_index, self.number_type.value)
        return self.is_recording()

    def stop_recording(self, write_to_storage: bool = False):
        """
        Disable recording mode; afterwards values and derivatives can be computed.

        Args:
            write_to_storage: write the recorded tape to the configured tape
                directory (taped numbers only)
        """
        self._machine.require(HelperState.RECORDING, action="stop_recording")
        n_missing = self._n_dependent - self.n_registered_dependent_variables()
        if n_missing:
            raise IncompleteRegistrationError(
                f"{n_missing} of {self._n_dependent} dependent variables are not registered"
            )
        self.finalize_independent_variables()
        path = self.backend.stop_taping(write_to_storage, self.config.tape_directory)
        if self.backend.is_taped:
            # Only finished recordings become visible to other helpers
            registered_tapes.register(self._active_tape, overwrite=True)
        if path is not None:
            logger.info("Tape %d written to %s", self._active_tape, path)
        if not self._keep_values:
            # Recorded values were placeholders: the evaluation point must be set anew
            self._registered_values = [False] * self._n_independent
        self._machine.transition(HelperState.READY)

    def activate_tape(self, tape_index: int):
        """
        Select a previously recorded tape for re-evaluation, without re-recording.
        """
        self._machine.require(HelperState.IDLE, HelperState.READY, action="activate_tape")
        self._check_tape_index(tape_index)
        if not self.is_registered_tape(tape_index):
            raise UnknownTapeError(f"Tape {tape_index} has not been recorded")
        n_ind, n_dep = self.backend.recorded_shape(tape_index)
        if (n_ind, n_dep) != (self._n_independent, self._n_dependent):
            raise IndexOutOfRangeError(
                f"Tape {tape_index} records {n_ind} independent and {n_dep} dependent "
                f"variables; helper expects {self._n_independent} and {self._n_dependent}"
            )
        self.backend.activate(tape_index)
        self._active_tape = tape_index
        self._finalized = True
        self._machine.transition(HelperState.READY)
        logger.debug("Activated tape %d", tape_index)

    # ------------------------------------------------------------------ #
    # Independent variables
    # ------------------------------------------------------------------ #
    def set_value(self, index: int, value: float):
        """Set the value of independent variable `index`."""
        self._check_independent_index(index)
        self._check_values_writable([index])
        self.independent_variable_values[index] = float(value)
        self._registered_values[index] = True

    set_independent_variable = set_value

    def set_independent_variables(self, values: Sequence[float]):
        """Set the values of all independent variables at once."""
        values = np.asarray(values, dtype=float).ravel()
        if values.size != self._n_independent:
            raise IndexOutOfRangeError(
                f"Expected {self._n_independent} values, got {values.size}"
            )
        self._check_values_writable(range(self._n_independent))
        self.independent_variable_values[:] = values
        self._registered_values = [True] * self._n_independent

    def mark_sensitive(self, index: int):
        """
        Return the sensitive (tracked) counterpart of independent variable `index`.

        Each variable may be marked once per recording session. The order in
        which variables are marked must be the same every time a tape is
        recorded.
        """
        self._check_independent_index(index)
        self._machine.require(HelperState.IDLE, HelperState.RECORDING, action="mark_sensitive")
        if self._marked[index]:
            raise AlreadyMarkedError(f"Independent variable {index} is already marked")
        if self._finalized:
            raise RecordingStateError("Independent variables have been finalized")
        return self._mark(index)

    def get_sensitive_variables(self) -> List:
        """Mark every unmarked independent variable; return all sensitive values in order."""
        self._machine.require(HelperState.IDLE, HelperState.RECORDING,
                              action="get_sensitive_variables")
        self.finalize_independent_variables()
        return list(self.independent_variables)

    def get_non_sensitive_variable(self, index: int):
        """Untracked AD number holding the value of independent variable `index`."""
        self._check_independent_index(index)
        return self.backend.make_constant(self.independent_variable_values[index])

    def finalize_independent_variables(self):
        """Mark any unmarked independent variable and freeze the set (idempotent)."""
        if self._finalized:
            return
        for index in range(self._n_independent):
            if not self._marked[index]:
                self._mark(index)
        self._finalized = True

    def n_registered_independent_variables(self) -> int:
        return sum(self._registered_values)

    def n_marked_independent_variables(self) -> int:
        return sum(self._marked)

    # ------------------------------------------------------------------ #
    # Dependent variables
    # ------------------------------------------------------------------ #
    def register_dependent_variable(self, index: int, expression):
        """Register f_index; each index only once per session."""
        if not 0 <= index < self._n_dependent:
            raise IndexOutOfRangeError(
                f"Dependent variable index {index} out of range [0, {self._n_dependent})"
            )
        self._machine.require(HelperState.IDLE, HelperState.RECORDING,
                              action="register_dependent_variable")
        if self._registered_dependents[index]:
            raise AlreadyRegisteredError(f"Dependent variable {index} is already registered")
        expression = self.backend.coerce_dependent(expression)
        self.dependent_variables[index] = self.backend.register_dependent(index, expression)
        self._registered_dependents[index] = True

    def register_dependent_variables(self, expressions: Sequence):
        if len(expressions) != self._n_dependent:
            raise IndexOutOfRangeError(
                f"Expected {self._n_dependent} dependent variables, got {len(expressions)}"
            )
        self._machine.require(HelperState.IDLE, HelperState.RECORDING,
                              action="register_dependent_variables")
        if any(self._registered_dependents):
            raise AlreadyRegisteredError("Some dependent variables are already registered")
        coerced = [self.backend.coerce_dependent(e) for e in expressions]
        for index, expression in enumerate(coerced):
            self.register_dependent_variable(index, expression)

    def n_registered_dependent_variables(self) -> int:
        return sum(self._registered_dependents)

    # ------------------------------------------------------------------ #
    # Evaluation (used by the derived helpers)
    # ------------------------------------------------------------------ #
    def _check_ready(self, action: str):
        self._machine.require(HelperState.READY, action=action)
        if self.backend.is_taped:
            n_missing = self._n_independent - self.n_registered_independent_variables()
            if n_missing:
                raise IncompleteRegistrationError(
                    f"{n_missing} of {self._n_independent} independent variable values "
                    f"are not set"
                )

    def _value(self, index: int) -> float:
        return self.backend.value(self.dependent_variables, index,
                                  self.independent_variable_values)

    def _gradient(self, index: int) -> np.ndarray:
        return self.backend.gradient(self.dependent_variables, index,
                                     self.independent_variable_values)

    def _hessian(self, index: int) -> np.ndarray:
        return self.backend.hessian(self.dependent_variables, index,
                                    self.independent_variable_values)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _resize(self, n_independent: int, n_dependent: int):
        _check_count(n_independent, "independent")
        _check_count(n_dependent, "dependent")
        self._n_independent = int(n_independent)
        self._n_dependent = int(n_dependent)
        self.independent_variable_values = np.zeros(self._n_independent)
        self._reset_registered_independent_variables()
        self._reset_registered_dependent_variables()
        self._finalized = False

    def _reset_registered_independent_variables(self):
        self.independent_variables = [None] * self._n_independent
        self._registered_values = [False] * self._n_independent
        self._marked = [False] * self._n_independent

    def _reset_registered_dependent_variables(self):
        self.dependent_variables = [None] * self._n_dependent
        self._registered_dependents = [False] * self._n_dependent

    def _mark(self, index: int):
        ad = self.backend.make_independent(
            self.independent_variable_values[index], index, self._n_independent
        )
        self.independent_variables[index] = ad
        self._marked[index] = True
        return ad

    def _check_independent_index(self, index: int):
        if not 0 <= index < self._n_independent:
            raise IndexOutOfRangeError(
                f"Independent variable index {index} out of range [0, {self._n_independent})"
            )

    def _check_tape_index(self, tape_index: int):
        if not HelperConfig.is_valid_tape_index(tape_index):
            raise InvalidTapeIndexError(
                f"Tape index {tape_index!r} outside the valid range "
                f"({INVALID_TAPE_INDEX}, {MAX_TAPE_INDEX})"
            )

    def _check_values_writable(self, indices):
        if self.state is HelperState.RECORDING:
            if self._finalized:
                raise RecordingStateError(
                    "Independent variables have been finalized for this recording"
                )
            marked = [i for i in indices if self._marked[i]]
            if marked:
                # The sensitive values already handed out carry the old values
                raise RecordingStateError(
                    f"Independent variables {marked} are already marked sensitive; "
                    f"set values before marking"
                )
        if self.state is HelperState.READY and not self.backend.is_taped:
            raise RecordingStateError(
                "Tapeless expressions cannot be re-evaluated; record again to change values"
            )


def _check_count(n, kind: str):
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 0:
        raise ValueError(f"Number of {kind} variables must be a non-negative integer, got {n!r}")


def _flags(flags: Sequence[bool]) -> str:
    return "".join("1" if f else "0" for f in flags)
