"""
Shared numeric defaults for tapegrad.

The values below are read once at import time; each can be overridden with
an environment variable of the same name in upper case prefixed by
``TAPEGRAD_`` (e.g. ``TAPEGRAD_GRADCHECK_EPS=1e-5``), or changed at runtime
by assigning to the attributes of the module-level ``config`` object.
"""

import os
from dataclasses import dataclass, field, fields

import numpy as np


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(f"TAPEGRAD_{name.upper()}")
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"TAPEGRAD_{name.upper()} must be a number, got {raw!r}") from None


@dataclass
class Config:
    """
    Attributes:
        float_dtype: dtype used when normalising integer inputs before
            differentiation
        gradcheck_eps: step of the central finite difference
        gradcheck_rtol: relative tolerance when comparing with finite differences
        gradcheck_atol: absolute tolerance when comparing with finite differences
    """
    float_dtype: type = np.float64
    gradcheck_eps: float = field(default_factory=lambda: _env_float("gradcheck_eps", 1e-6))
    gradcheck_rtol: float = field(default_factory=lambda: _env_float("gradcheck_rtol", 1e-4))
    gradcheck_atol: float = field(default_factory=lambda: _env_float("gradcheck_atol", 1e-6))

    def replace(self, **overrides) -> "Config":
        """Copy with some fields changed; unknown names raise TypeError."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"unknown config fields: {sorted(unknown)}")
        values = {name: getattr(self, name) for name in known}
        values.update(overrides)
        return Config(**values)


config = Config()
