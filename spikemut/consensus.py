"""Majority-vote consensus per variant, classified against the reference."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import pandas as pd

from .config import DISPLAY_DECIMALS, GAP, GENE, REFERENCE_ID
from .genotypes import Classification, ColumnFrequency, classify, compute_column_frequencies

__all__ = [
    "ConsensusRecord",
    "consensus_from_frequencies",
    "build_consensus",
    "consensus_sequence",
    "consensus_mutations",
    "consensus_to_frame",
]


@dataclass(frozen=True)
class ConsensusRecord:
    variant: str
    position: int
    domain: str
    reference_residue: str
    residue: str
    support: float           # share of the group carrying ``residue``
    classification: Classification


def _consensus_at(cf: ColumnFrequency) -> ConsensusRecord:
    residue = cf.most_frequent(include_gaps=False)
    if residue is None:
        residue = GAP
    return ConsensusRecord(
        variant=cf.variant,
        position=cf.position,
        domain=cf.domain,
        reference_residue=cf.reference_residue,
        residue=residue,
        support=cf.frequencies.get(residue, 0.0),
        classification=classify(residue, cf.reference_residue),
    )


def consensus_from_frequencies(frequencies: Iterable[ColumnFrequency]) -> List[ConsensusRecord]:
    return [_consensus_at(cf) for cf in frequencies]


def build_consensus(alignment, variant_group, domain_map, reference_id=REFERENCE_ID):
    """Consensus residue for every column of *variant_group*.

    Gaps never win the vote; a column that is all gaps yields ``-`` and is
    classified as missing.
    """
    frequencies = compute_column_frequencies(alignment, variant_group, domain_map, reference_id)
    return consensus_from_frequencies(frequencies)


def consensus_sequence(records: Iterable[ConsensusRecord]) -> str:
    return "".join(r.residue for r in sorted(records, key=lambda r: r.position))


def consensus_mutations(records: Iterable[ConsensusRecord], gene: str = GENE) -> List[str]:
    """Substitutions in Nextclade notation, e.g. ``S:D614G``."""
    prefix = f"{gene}:" if gene else ""
    return [f"{prefix}{r.reference_residue}{r.position}{r.residue}"
            for r in sorted(records, key=lambda r: r.position)
            if r.classification is Classification.MUTATION]


def consensus_to_frame(records: Iterable[ConsensusRecord], ndigits: int = DISPLAY_DECIMALS) -> pd.DataFrame:
    rows = [{
        "variant": r.variant,
        "position": r.position,
        "domain": r.domain,
        "reference": r.reference_residue,
        "consensus": r.residue,
        "support": round(r.support, ndigits),
        "classification": r.classification.value,
    } for r in records]
    columns = ["variant", "position", "domain", "reference", "consensus",
               "support", "classification"]
    return pd.DataFrame(rows, columns=columns)
