"""
Errors raised by the AD helpers.

Every check runs before the helper mutates any state, so after one of these
is raised the helper is exactly as it was before the failing call.
"""


class ADHelperError(Exception):
    """Base class for all helper errors."""


class InvalidTapeIndexError(ADHelperError, ValueError):
    """Tape index outside the valid range."""


class DuplicateTapeError(ADHelperError):
    """Attempt to record over an existing tape without asking to overwrite it."""


class UnknownTapeError(ADHelperError, KeyError):
    """Attempt to activate a tape that was never recorded."""

    def __str__(self):
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class AlreadyMarkedError(ADHelperError):
    """Independent variable marked sensitive twice in one session."""


class AlreadyRegisteredError(ADHelperError):
    """Dependent variable registered twice in one session."""


class IncompleteRegistrationError(ADHelperError):
    """Not every declared variable has been registered."""


class IndexOutOfRangeError(ADHelperError, IndexError):
    """Variable index beyond the declared number of variables."""


class RecordingStateError(ADHelperError, RuntimeError):
    """Operation not allowed in the helper's current recording state."""


class NotReadyError(RecordingStateError):
    """Value or derivative requested before the helper is ready to evaluate."""
