# tapegrad/ops/transcendental.py
import numpy as np
from scipy.special import erf as scipy_erf

from ..core.primitive import register_primitive

exp = register_primitive(np.exp, name="exp")
exp.defgrad(0, lambda dy, y, x: dy * exp(x))

log = register_primitive(np.log, name="log")
log.defgrad(0, lambda dy, y, x: dy / x)

sqrt = register_primitive(np.sqrt, name="sqrt")
sqrt.defgrad(0, lambda dy, y, x: dy * 0.5 / sqrt(x))

sin = register_primitive(np.sin, name="sin")
sin.defgrad(0, lambda dy, y, x: dy * cos(x))

cos = register_primitive(np.cos, name="cos")
cos.defgrad(0, lambda dy, y, x: -(dy * sin(x)))

tanh = register_primitive(np.tanh, name="tanh")
tanh.defgrad(0, lambda dy, y, x: dy * (1.0 - tanh(x) ** 2))

# Error function: erf(x) = (2/√π) ∫₀ˣ e^(-t²) dt
erf = register_primitive(scipy_erf, name="erf")


@erf.defgrad(0)
def _erf_grad(dy, y, x):
    # d/dx erf(x) = (2/√π) * e^(-x²)
    return dy * (2.0 / np.sqrt(np.pi)) * exp(-(x * x))
