# aad_helpers/__init__.py
# AD helpers: derivatives of user-defined functions via taped or tapeless numbers

from . import aad
from . import helpers
from .helpers import (
    ADHelperBase,
    ADHelperScalarFunction,
    ADHelperVectorFunction,
    HelperConfig,
    HelperState,
    NumberTypes,
    registered_tapes,
)

__version__ = "0.1.0"

__all__ = [
    'aad',
    'helpers',
    'ADHelperBase',
    'ADHelperScalarFunction',
    'ADHelperVectorFunction',
    'HelperConfig',
    'HelperState',
    'NumberTypes',
    'registered_tapes',
]
