# tapegrad/__init__.py
# Tape-based reverse-mode automatic differentiation

__version__ = "0.1.0"

from .config import config, Config
from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all

# Differentiable primitives (also registers the Boxed operator overloads)
from . import ops
from .ops import *  # noqa: F401,F403
from .ops import __all__ as _ops_all

from .gradcheck import gradcheck, numerical_grad

__all__ = (
    ["config", "Config", "ops", "gradcheck", "numerical_grad"]
    + list(_core_all)
    + list(_ops_all)
)
