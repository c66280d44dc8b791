"""
Numerical tolerances and shared defaults.

The tolerance tiers say how closely results must agree with closed-form
answers (sample means, exact lines). The defaults are the values used when
callers do not pass their own.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Closed-form agreement: fitted coefficients vs. sample means / exact lines
EXACT = ToleranceTier(
    rtol=1e-10,
    atol=1e-10,
    name='exact',
    description='Double precision agreement with a closed-form answer',
)

# Agreement between two numerically different routes to the same quantity
# (e.g. a contrast of a means-coded fit vs. a reference-coded coefficient)
EQUIVALENT = ToleranceTier(
    rtol=1e-8,
    atol=1e-8,
    name='equivalent',
    description='Two parameterisations of the same model',
)

# Relative tolerance on the R diagonal when deciding numerical rank.
# Multiplied by max(n, p) and |R[0, 0]| in qr_rank().
RANK_EPS_FACTOR = 1.0

DEFAULT_CONF_LEVEL = 0.95

# Default multiple-comparison adjustment for each comparison family
DEFAULT_PAIRWISE_ADJUST = 'tukey'
DEFAULT_TRT_VS_CTRL_ADJUST = 'holm'
DEFAULT_CONTRAST_ADJUST = 'none'
