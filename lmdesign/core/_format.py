"""Text formatting helpers shared by the summary() methods."""

import numpy as np

SIGNIF_LEGEND = "Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1"


def significance_stars(p: float | None) -> str:
    """Return significance stars for a p-value."""
    if p is None or np.isnan(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    if p < 0.1:
        return "."
    return ""


def fmt_num(value: float, width: int, spec: str) -> str:
    """Right-align a number, printing NA for NaN."""
    if value is None or np.isnan(value):
        return f"{'NA':>{width}}"
    return f"{value:>{width}{spec}}"


def fmt_p(p: float, width: int = 10) -> str:
    """Format a p-value the way R prints Pr(>|t|)."""
    if p is None or np.isnan(p):
        return f"{'NA':>{width}}"
    if p < 2e-16:
        return f"{'<2e-16':>{width}}"
    if p < 1e-4:
        return f"{p:>{width}.2e}"
    return f"{p:>{width}.4f}"
