"""
AD helpers: tape lifecycle, variable registration and derivative extraction
on top of the taped (ADVar) and tapeless (TVar) numbers of `aad_helpers.aad`.

Provides:
1. ADHelperBase: recording state machine and variable bookkeeping
2. ADHelperScalarFunction: value, gradient and Hessian of one function
3. ADHelperVectorFunction: values and Jacobian of several functions
4. TapeRegistry / registered_tapes: process-wide set of recorded tape indices
"""

from .base import ADHelperBase
from .scalar_function import ADHelperScalarFunction
from .vector_function import ADHelperVectorFunction
from .backends import Backend, TapedBackend, TapelessBackend
from .config import HelperConfig, NumberTypes, TapeBufferSizes
from .registry import TapeRegistry, registered_tapes
from .state import HelperState
from .exceptions import (
    ADHelperError,
    AlreadyMarkedError,
    AlreadyRegisteredError,
    DuplicateTapeError,
    IncompleteRegistrationError,
    IndexOutOfRangeError,
    InvalidTapeIndexError,
    NotReadyError,
    RecordingStateError,
    UnknownTapeError,
)

__all__ = [
    'ADHelperBase',
    'ADHelperScalarFunction',
    'ADHelperVectorFunction',
    'Backend',
    'TapedBackend',
    'TapelessBackend',
    'HelperConfig',
    'NumberTypes',
    'TapeBufferSizes',
    'TapeRegistry',
    'registered_tapes',
    'HelperState',
    'ADHelperError',
    'AlreadyMarkedError',
    'AlreadyRegisteredError',
    'DuplicateTapeError',
    'IncompleteRegistrationError',
    'IndexOutOfRangeError',
    'InvalidTapeIndexError',
    'NotReadyError',
    'RecordingStateError',
    'UnknownTapeError',
]
