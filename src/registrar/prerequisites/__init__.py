"""Prerequisites package - prerequisite closure and eligibility."""

from registrar.prerequisites.models import (
    MissingPrerequisite,
    PrerequisiteCheck,
    PrerequisiteRequirement,
)
from registrar.prerequisites.resolver import PrerequisiteResolver

__all__ = [
    "MissingPrerequisite",
    "PrerequisiteCheck",
    "PrerequisiteRequirement",
    "PrerequisiteResolver",
]
