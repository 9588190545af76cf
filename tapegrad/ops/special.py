# tapegrad/ops/special.py
import numpy as np
from scipy.special import ndtr

from ..core.primitive import register_primitive
from .transcendental import exp

SQRT_TWO_PI = np.sqrt(2.0 * np.pi)


def norm_pdf(x):
    """Standard normal density; composite, so differentiable through `exp`."""
    return exp(-0.5 * x * x) / SQRT_TWO_PI


# Standard normal CDF N(x), with dN/dx = phi(x)
norm_cdf = register_primitive(ndtr, name="norm_cdf")
norm_cdf.defgrad(0, lambda dy, y, x: dy * norm_pdf(x))
