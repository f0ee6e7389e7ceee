"""Drop gap-heavy or excluded sequences from an alignment.

Both filters return a new alignment in the original order and always keep
the reference sequence, whatever its gap content or metadata.
"""
from .config import GAP, REFERENCE_ID
from .msa import require_reference


def gap_fraction(sequence):
    """Share of columns of *sequence* holding the gap symbol."""
    if len(sequence) == 0:
        return 0.0
    return sequence.residues.count(GAP) / len(sequence)


def filter_by_gap(alignment, threshold, reference_id=REFERENCE_ID):
    """Keep sequences whose gap fraction is at most *threshold*."""
    require_reference(alignment, reference_id)
    return alignment.where(
        lambda s: s.id == reference_id or gap_fraction(s) <= threshold
    )


def filter_by_exclusion_set(alignment, excluded_ids, reference_id=REFERENCE_ID):
    """Remove every sequence whose id is in *excluded_ids*."""
    require_reference(alignment, reference_id)
    excluded = set(excluded_ids)
    excluded.discard(reference_id)
    return alignment.where(lambda s: s.id not in excluded)
