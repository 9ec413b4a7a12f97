"""Error taxonomy of the evaluation pipeline.

DataIntegrityError aborts the whole run. ExperimentError subclasses are
confined to a single experiment branch: the pipeline records them and keeps
going with the sibling branches.
"""


class FertilityError(Exception):
    """Base class for errors raised by the fertility package."""


class DataIntegrityError(FertilityError):
    """Input table is missing, malformed, or holds values outside the schema."""


class ExperimentError(FertilityError):
    """Failure that only invalidates the experiment branch it occurred in."""


class InsufficientClassSizeError(ExperimentError):
    """A class is too small for the requested partition or resampling."""


class InsufficientNeighborsError(InsufficientClassSizeError):
    """SMOTE needs more minority records than nearest neighbours."""


class ParameterValidationError(ExperimentError, ValueError):
    """A model or split hyperparameter is outside its valid range."""


class DegenerateMetricWarning(UserWarning):
    """Sensitivity or specificity is zero or undefined for a confusion matrix."""
