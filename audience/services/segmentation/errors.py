"""Errors raised by the segmentation engine."""


class SegmentationError(Exception):
    """Base class for segmentation failures."""


class MalformedConditionError(SegmentationError, ValueError):
    """A condition names an operator its field does not support, or its
    value does not match the operator's arity."""


class SegmentValidationError(SegmentationError):
    """A segment cannot be saved; ``reason`` is shown to the operator."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SegmentNotFoundError(SegmentationError):
    def __init__(self, segment_id: str):
        self.segment_id = segment_id
        super().__init__(f"Segment {segment_id} not found")


class SegmentSaveError(SegmentationError):
    """The segments API refused a save request."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)
