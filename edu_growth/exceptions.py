"""
Exceptions raised by the education spending vs GDP growth pipeline.
"""


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    pass


class SchemaError(PipelineError):
    """
    Raised when input data does not have the expected shape.

    Covers:
    - Required columns missing from the raw or cleaned file
    - No column matching the year pattern
    - Duplicate (country, indicator, year) observations when duplicates
      are configured to be rejected
    """

    pass


class ModelFittingError(PipelineError):
    """
    Raised when a model cannot be fit on the training partition.

    The offending model stage is kept on the exception so the pipeline can
    record the failure and carry on with the remaining models.
    """

    def __init__(self, stage: str, reason: str):
        self.stage = stage
        self.reason = reason
        super().__init__(f"{stage}: {reason}")

    def to_dict(self) -> dict:
        return {"stage": self.stage, "reason": self.reason}


class SplitMismatchError(PipelineError):
    """Raised when evaluation re-derives a split that differs from training."""

    pass


class ArtifactNotFoundError(PipelineError):
    """Raised when a stage's input artifact does not exist yet."""

    pass
