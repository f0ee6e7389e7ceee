"""Exceptions raised by the alignment pipeline.

Every message names the sequence id, position or variant that triggered it,
since these are data problems to be fixed upstream.
"""


class SpikeMutError(Exception):
    """Base class for all pipeline errors."""


class FormatError(SpikeMutError):
    """Malformed alignment or annotation input."""


class RangeError(SpikeMutError, IndexError):
    """Position or id lookup outside the valid range."""


class EmptySubsetError(SpikeMutError):
    """A requested sequence subset has no members in the alignment."""

    def __init__(self, variant, message=None):
        self.variant = variant
        super().__init__(message or f"variant {variant!r} has no sequences left in the alignment")


class ReferenceMissingError(SpikeMutError):
    """The reference sequence is absent from an alignment."""

    def __init__(self, reference_id):
        self.reference_id = reference_id
        super().__init__(f"reference sequence {reference_id!r} not found in alignment")
