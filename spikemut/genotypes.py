"""Per-column residue frequencies for a variant group.

Each :class:`ColumnFrequency` is built with its reference residue and domain
already attached, so downstream tables never re-join on position.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .config import ALL_VARIANTS, DISPLAY_DECIMALS, GAP, KEEP_THRESHOLD, REFERENCE_ID
from .errors import EmptySubsetError, FormatError
from .msa import Alignment, require_reference, subset

__all__ = [
    "Classification",
    "classify",
    "VariantGroup",
    "ColumnFrequency",
    "pooled_group",
    "variant_groups_in",
    "compute_column_frequencies",
    "surfaced_mutations",
    "frequencies_to_frame",
    "per_variant",
]


class Classification(Enum):
    CONSERVED = "conserved"
    MUTATION = "mutation"
    MISSING = "missing"


def classify(residue: str, reference_residue: str) -> Classification:
    """Gap → missing, reference match → conserved, anything else → mutation."""
    if residue == GAP:
        return Classification.MISSING
    if residue == reference_residue:
        return Classification.CONSERVED
    return Classification.MUTATION


def _ranked(frequencies: Mapping[str, float]) -> List[Tuple[str, float]]:
    # highest frequency first, equal frequencies by residue symbol ascending
    return sorted(frequencies.items(), key=lambda kv: (-kv[1], kv[0]))


@dataclass(frozen=True)
class VariantGroup:
    label: str
    members: frozenset

    @classmethod
    def of(cls, label: str, ids: Iterable[str]) -> "VariantGroup":
        return cls(label, frozenset(ids))

    def __len__(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class ColumnFrequency:
    """Residue frequency distribution of one variant group at one column."""

    variant: str
    position: int
    domain: str
    reference_residue: str
    n_sequences: int
    frequencies: Mapping[str, float]

    def most_frequent(self, include_gaps: bool = True) -> Optional[str]:
        """Most frequent residue, ties broken by residue symbol ascending."""
        ranked = [kv for kv in _ranked(self.frequencies)
                  if include_gaps or kv[0] != GAP]
        return ranked[0][0] if ranked else None

    def classification_of(self, residue: str) -> Classification:
        return classify(residue, self.reference_residue)

    def mutations(self, threshold: float = KEEP_THRESHOLD) -> List[Tuple[str, float]]:
        """``(residue, frequency)`` pairs worth surfacing in reports."""
        return [(res, freq) for res, freq in _ranked(self.frequencies)
                if freq >= threshold
                and self.classification_of(res) is Classification.MUTATION]

    def rounded(self, ndigits: int = DISPLAY_DECIMALS) -> Dict[str, float]:
        return {res: round(freq, ndigits) for res, freq in self.frequencies.items()}


def pooled_group(alignment: Alignment, reference_id: str = REFERENCE_ID) -> VariantGroup:
    """Every non-reference sequence of *alignment*, labelled ``"all"``."""
    return VariantGroup.of(ALL_VARIANTS, (i for i in alignment.ids if i != reference_id))


def variant_groups_in(
    alignment: Alignment,
    groups: Mapping[str, Iterable[str]],
    reference_id: str = REFERENCE_ID,
) -> Dict[str, VariantGroup]:
    """Restrict metadata groups to ids present in *alignment*.

    The reference is never a member. Groups left empty are kept so that the
    caller decides whether to skip them.

    Raises
    ------
    FormatError
        If a label collides with the pooled scope name ``"all"``.
    """
    if ALL_VARIANTS in groups:
        raise FormatError(
            f"variant label {ALL_VARIANTS!r} is reserved for the pooled scope; "
            "rename that lineage in the metadata"
        )
    present = set(alignment.ids)
    present.discard(reference_id)
    return {label: VariantGroup.of(label, set(ids) & present)
            for label, ids in sorted(groups.items())}


def compute_column_frequencies(
    alignment: Alignment,
    variant_group: VariantGroup,
    domain_map,
    reference_id: str = REFERENCE_ID,
) -> List[ColumnFrequency]:
    """One :class:`ColumnFrequency` per alignment column.

    Raises
    ------
    ReferenceMissingError
        If *reference_id* is not in *alignment*.
    FormatError
        If *domain_map* does not span exactly the alignment width.
    EmptySubsetError
        If no member of *variant_group* is in *alignment*.
    """
    reference = require_reference(alignment, reference_id)
    if domain_map.length != alignment.length:
        raise FormatError(
            f"domain map covers 1..{domain_map.length} but the alignment "
            f"has {alignment.length} columns"
        )
    members = subset(alignment, variant_group.members - {reference_id},
                     label=variant_group.label)
    n = len(members)
    rows = [s.residues for s in members]
    result = []
    for position in range(1, alignment.length + 1):
        counts = Counter(row[position - 1] for row in rows)
        result.append(ColumnFrequency(
            variant=variant_group.label,
            position=position,
            domain=domain_map.domain_for(position),
            reference_residue=reference.residue_at(position),
            n_sequences=n,
            frequencies={res: counts[res] / n for res in sorted(counts)},
        ))
    return result


def surfaced_mutations(
    frequencies: Iterable[ColumnFrequency],
    threshold: float = KEEP_THRESHOLD,
) -> List[Tuple[ColumnFrequency, str, float]]:
    """Mutated residues at frequency ≥ *threshold*, in column order."""
    return [(cf, res, freq)
            for cf in frequencies
            for res, freq in cf.mutations(threshold)]


def frequencies_to_frame(
    frequencies: Iterable[ColumnFrequency],
    threshold: float = KEEP_THRESHOLD,
    ndigits: int = DISPLAY_DECIMALS,
) -> pd.DataFrame:
    """Long table: one row per (variant, position, residue)."""
    rows = []
    for cf in frequencies:
        for res, freq in cf.frequencies.items():
            cls = cf.classification_of(res)
            rows.append({
                "variant": cf.variant,
                "position": cf.position,
                "domain": cf.domain,
                "reference": cf.reference_residue,
                "residue": res,
                "n_sequences": cf.n_sequences,
                "frequency": round(freq, ndigits),
                "classification": cls.value,
                "keep": cls is Classification.MUTATION and freq >= threshold,
            })
    columns = ["variant", "position", "domain", "reference", "residue",
               "n_sequences", "frequency", "classification", "keep"]
    return pd.DataFrame(rows, columns=columns)


def per_variant(
    compute: Callable,
    alignment: Alignment,
    groups: Mapping[str, VariantGroup],
    *args,
    **kwargs,
) -> Tuple[Dict[str, object], Dict[str, EmptySubsetError]]:
    """Run ``compute(alignment, group, *args, **kwargs)`` for every group.

    A group with no surviving sequences is skipped rather than aborting the
    batch. Returns ``(results, skipped)`` keyed by variant label.
    """
    results: Dict[str, object] = {}
    skipped: Dict[str, EmptySubsetError] = {}
    for label, group in groups.items():
        try:
            results[label] = compute(alignment, group, *args, **kwargs)
        except EmptySubsetError as exc:
            skipped[label] = exc
    return results, skipped
