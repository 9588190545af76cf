# tapegrad/core/errors.py
"""
Exceptions raised by the differentiation engine.

Every condition here aborts the current differentiation call; there is no
partial gradient. An output that does not depend on the input is *not* an
error and is reported by returning a zero/None gradient instead.
"""


class TapegradError(Exception):
    """Base class for all tapegrad errors."""


class NonScalarOutputError(TapegradError, ValueError):
    """The differentiated function returned a non-scalar value."""


class InconsistentGraphError(TapegradError, RuntimeError):
    """The reverse sweep never reached the input node of a tape it should reach."""


class AccumulationTypeError(TapegradError, TypeError):
    """Gradient contributions arriving at one node have incompatible structure."""


class TapeClosedError(TapegradError, RuntimeError):
    """A node was pushed onto a tape that has already been closed."""


class NotDifferentiableError(TapegradError, TypeError):
    """A primitive has no gradient registered for the requested argument."""
