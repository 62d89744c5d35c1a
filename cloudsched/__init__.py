"""Task-to-resource assignment optimization for heterogeneous clouds.

Exports base data structures and the objective evaluator.
"""

from cloudsched.models import (  # noqa: F401
    AlgorithmType,
    ConfigurationError,
    Metrics,
    ObjectiveWeights,
    Resource,
    Task,
)
from cloudsched.objective import ObjectiveEvaluator  # noqa: F401

__all__ = [
    "AlgorithmType",
    "ConfigurationError",
    "Metrics",
    "ObjectiveEvaluator",
    "ObjectiveWeights",
    "Resource",
    "Task",
]
