"""
Generic result container for lmdesign computations.

Every fit, contrast and marginal-means computation returns its numbers
inside the same envelope so that timing, metadata and non-fatal warnings
travel with the numbers.

Design decisions:
    - Generic over parameter payload P
    - info dict for method metadata (method, rank, adjustment, ...)
    - timing is optional
    - Immutable (frozen=True)
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Attributes:
        params: Domain-specific payload (LinearParams, ContrastParams, ...)
        info: Structured metadata (method, rank, adjustment, formula)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the code path that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LinearParams(...),
        ...     info={'method': 'qr', 'rank': 3},
        ...     timing={'total_seconds': 0.001},
        ...     backend_name='cpu_qr',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
