"""Trust metrics computed over atom, test and coverage records."""

from atomtrace.metrics.coupling import CouplingMetrics, LinkageIndex, compute_coupling_metrics
from atomtrace.metrics.epistemic import EpistemicMetrics, compute_epistemic_metrics

__all__ = [
    "CouplingMetrics",
    "EpistemicMetrics",
    "LinkageIndex",
    "compute_coupling_metrics",
    "compute_epistemic_metrics",
]
