"""Per-position mutation statistics for a spike protein MSA across variants.

Loads a precomputed alignment, drops gap-heavy and non-human sequences,
groups the rest by lineage and reports per-column residue frequencies,
consensus sequences and domain-level mutation summaries relative to a
reference sequence.
"""
__version__ = "0.3.0"
