"""Mutation/conservation rollups by position, domain and variant.

Two per-position forms are produced from column frequencies:

* **pooled** – one row per position; mass of non-gap residues that differ
  from the reference is *mutated*, everything else (reference matches **and
  gaps**) is *conserved*, so the two percentages always add up to 100.
* **by residue** – the same mass split per observed residue, keeping which
  substitution contributes how much.

Pooled rows roll up further into domain- and protein-level summaries.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .config import ALL_VARIANTS, DISPLAY_DECIMALS, GENE, KEEP_THRESHOLD, REFERENCE_ID
from .consensus import ConsensusRecord, consensus_mutations
from .errors import RangeError
from .genotypes import (
    Classification,
    ColumnFrequency,
    VariantGroup,
    compute_column_frequencies,
    pooled_group,
)

__all__ = [
    "MutationSummary",
    "DomainSummary",
    "pooled_summary",
    "residue_summary",
    "summarize",
    "domain_summary",
    "genome_summary",
    "mutation_table",
    "summaries_to_frame",
]

GENOME = "genome"


@dataclass(frozen=True)
class MutationSummary:
    scope: str
    position: int
    domain: str
    reference_residue: str
    residue: Optional[str]    # None for pooled rows
    n_sequences: int
    mutated: float            # genome-equivalents
    conserved: float
    mutation_percentage: float
    conserved_percentage: float


@dataclass(frozen=True)
class DomainSummary:
    scope: str
    domain: str
    positions: int
    mutated_positions: int
    mean_mutation_percentage: float
    max_mutation_percentage: float


def _counts_as_mutated(cls: Classification) -> bool:
    # gaps are folded into the conserved side of the rollup
    if cls is Classification.MUTATION:
        return True
    if cls is Classification.CONSERVED or cls is Classification.MISSING:
        return False
    raise ValueError(f"unhandled classification {cls!r}")


def _percent(part: float, total: float) -> float:
    return 100.0 * part / total if total else 0.0


def pooled_summary(frequencies: Iterable[ColumnFrequency]) -> List[MutationSummary]:
    rows = []
    for cf in frequencies:
        mutated = conserved = 0.0
        for res, freq in cf.frequencies.items():
            if _counts_as_mutated(cf.classification_of(res)):
                mutated += freq
            else:
                conserved += freq
        total = mutated + conserved
        rows.append(MutationSummary(
            scope=cf.variant,
            position=cf.position,
            domain=cf.domain,
            reference_residue=cf.reference_residue,
            residue=None,
            n_sequences=cf.n_sequences,
            mutated=mutated * cf.n_sequences,
            conserved=conserved * cf.n_sequences,
            mutation_percentage=_percent(mutated, total),
            conserved_percentage=_percent(conserved, total),
        ))
    return rows


def residue_summary(frequencies: Iterable[ColumnFrequency]) -> List[MutationSummary]:
    rows = []
    for cf in frequencies:
        total = sum(cf.frequencies.values())
        for res, freq in cf.frequencies.items():
            mutated = freq if _counts_as_mutated(cf.classification_of(res)) else 0.0
            conserved = freq - mutated
            rows.append(MutationSummary(
                scope=cf.variant,
                position=cf.position,
                domain=cf.domain,
                reference_residue=cf.reference_residue,
                residue=res,
                n_sequences=cf.n_sequences,
                mutated=mutated * cf.n_sequences,
                conserved=conserved * cf.n_sequences,
                mutation_percentage=_percent(mutated, total),
                conserved_percentage=_percent(conserved, total),
            ))
    return rows


def summarize(
    alignment,
    groups: Mapping[str, VariantGroup],
    domain_map,
    reference_id: str = REFERENCE_ID,
    scope: str = ALL_VARIANTS,
    by_residue: bool = False,
) -> List[MutationSummary]:
    """Per-position summary for ``"all"`` sequences or one named variant.

    Raises
    ------
    RangeError
        If *scope* names a variant that is not in *groups*.
    EmptySubsetError
        If the selected group has no sequences in *alignment*.
    """
    if scope == ALL_VARIANTS:
        group = pooled_group(alignment, reference_id)
    elif scope in groups:
        group = groups[scope]
    else:
        raise RangeError(f"unknown variant {scope!r}")
    frequencies = compute_column_frequencies(alignment, group, domain_map, reference_id)
    return residue_summary(frequencies) if by_residue else pooled_summary(frequencies)


def _rollup(summaries: Iterable[MutationSummary], key, threshold: float) -> List[DomainSummary]:
    buckets: Dict[tuple, List[float]] = OrderedDict()
    for s in summaries:
        if s.residue is not None:
            raise ValueError("domain rollups take pooled summaries (residue=None)")
        buckets.setdefault((s.scope, key(s)), []).append(s.mutation_percentage)
    cutoff = 100.0 * threshold
    return [DomainSummary(
        scope=scope,
        domain=domain,
        positions=len(pcts),
        mutated_positions=sum(1 for p in pcts if p >= cutoff),
        mean_mutation_percentage=sum(pcts) / len(pcts),
        max_mutation_percentage=max(pcts),
    ) for (scope, domain), pcts in buckets.items()]


def domain_summary(summaries: Iterable[MutationSummary],
                   threshold: float = KEEP_THRESHOLD) -> List[DomainSummary]:
    """One row per (scope, domain) from pooled per-position rows.

    A position counts as mutated when its mutation share reaches *threshold*.
    """
    return _rollup(summaries, lambda s: s.domain, threshold)


def genome_summary(summaries: Iterable[MutationSummary],
                   threshold: float = KEEP_THRESHOLD) -> List[DomainSummary]:
    """Whole-protein rollup, one row per scope with domain ``"genome"``."""
    return _rollup(summaries, lambda s: GENOME, threshold)


def mutation_table(consensus_by_variant: Mapping[str, Iterable[ConsensusRecord]],
                   gene: str = GENE) -> pd.DataFrame:
    """Rows = lineages, columns = consensus mutations, ``"X"`` if present."""
    lineage_to_muts = {lineage: set(consensus_mutations(records, gene))
                       for lineage, records in consensus_by_variant.items()}

    def _position(label):
        return int("".join(ch for ch in label.split(":")[-1] if ch.isdigit()))

    all_mutations = sorted({m for s in lineage_to_muts.values() for m in s},
                           key=lambda m: (_position(m), m))
    df_table = pd.DataFrame("", index=sorted(lineage_to_muts), columns=all_mutations)
    for lineage, muts in lineage_to_muts.items():
        for m in muts:
            df_table.at[lineage, m] = "X"
    df_table.insert(0, "Lineage", df_table.index)
    return df_table.reset_index(drop=True)


def summaries_to_frame(records: Iterable, ndigits: int = DISPLAY_DECIMALS) -> pd.DataFrame:
    """MutationSummary or DomainSummary records as a rounded table."""
    df = pd.DataFrame([asdict(r) for r in records])
    float_cols = df.select_dtypes(include="float").columns
    df[float_cols] = df[float_cols].round(ndigits)
    return df
