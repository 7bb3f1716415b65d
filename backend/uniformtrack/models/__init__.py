"""SQLAlchemy models."""

from uniformtrack.models.school import School, UniformPolicy
from uniformtrack.models.student import Student, UniformLogEntry
from uniformtrack.models.batch import Batch, BatchItem, BatchItemSize
from uniformtrack.models.uniform import Uniform
from uniformtrack.models.distribution import DistributionIntent, IntentStatus

__all__ = [
    "School",
    "UniformPolicy",
    "Student",
    "UniformLogEntry",
    "Batch",
    "BatchItem",
    "BatchItemSize",
    "Uniform",
    "DistributionIntent",
    "IntentStatus",
]
