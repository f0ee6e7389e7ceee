"""Static lookup from alignment position to structural domain.

Domain tables are usually published in reference (ungapped) coordinates;
:meth:`DomainMap.for_reference` projects such a table onto the alignment
columns so that insertion columns are annotated too.
"""
from __future__ import annotations

import os
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import pandas as pd

from .errors import FormatError, RangeError
from .msa import AlignedSequence, reference_coordinates

__all__ = [
    "DomainRange",
    "DomainMap",
    "SPIKE_DOMAINS",
    "read_domain_table",
]

# SARS-CoV-2 spike (1273 aa) in Wuhan-Hu-1 coordinates.
SPIKE_DOMAINS: Tuple[Tuple[int, int, str], ...] = (
    (1, 13, "SP"),
    (14, 305, "NTD"),
    (306, 318, "NTD-RBD linker"),
    (319, 541, "RBD"),
    (542, 685, "SD1-SD2"),
    (686, 815, "S1/S2-S2'"),
    (816, 833, "FP"),
    (834, 911, "FPPR"),
    (912, 984, "HR1"),
    (985, 1034, "CH"),
    (1035, 1162, "CD"),
    (1163, 1213, "HR2"),
    (1214, 1237, "TM"),
    (1238, 1273, "CT"),
)


@dataclass(frozen=True)
class DomainRange:
    start: int
    end: int
    name: str

    def __contains__(self, position: int) -> bool:
        return self.start <= position <= self.end


class DomainMap:
    """Contiguous, non-overlapping domain ranges covering 1..L.

    Parameters
    ----------
    ranges : iterable of (start, end, name)
        Inclusive 1-based ranges, in order.

    Raises
    ------
    FormatError
        If the ranges leave a hole, overlap, or do not start at 1.
    """

    def __init__(self, ranges: Iterable[Tuple[int, int, str]]):
        self._ranges: Tuple[DomainRange, ...] = tuple(
            r if isinstance(r, DomainRange) else DomainRange(int(r[0]), int(r[1]), str(r[2]))
            for r in ranges
        )
        if not self._ranges:
            raise FormatError("domain table is empty")
        expected = 1
        for r in self._ranges:
            if r.start != expected:
                raise FormatError(
                    f"domain {r.name!r} starts at {r.start}, expected {expected} "
                    "(domains must be contiguous from position 1)"
                )
            if r.end < r.start:
                raise FormatError(f"domain {r.name!r} ends ({r.end}) before it starts ({r.start})")
            expected = r.end + 1
        self._starts = [r.start for r in self._ranges]

    @property
    def length(self) -> int:
        return self._ranges[-1].end

    @property
    def ranges(self) -> Tuple[DomainRange, ...]:
        return self._ranges

    @property
    def names(self) -> List[str]:
        """Domain names in positional order, without repeats."""
        seen: List[str] = []
        for r in self._ranges:
            if r.name not in seen:
                seen.append(r.name)
        return seen

    def domain_for(self, position: int) -> str:
        if not 1 <= position <= self.length:
            raise RangeError(f"position {position} outside domain map 1..{self.length}")
        return self._ranges[bisect_right(self._starts, position) - 1].name

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        return f"DomainMap({len(self._ranges)} domains over 1..{self.length})"

    @classmethod
    def for_reference(
        cls,
        ranges: Sequence[Tuple[int, int, str]],
        reference: AlignedSequence,
    ) -> "DomainMap":
        """Project reference-coordinate *ranges* onto the alignment columns.

        A column where the reference has a gap belongs to the domain of the
        preceding reference residue; leading insertions belong to the first
        domain.
        """
        ungapped = cls(ranges)
        coords = reference_coordinates(reference)
        if not coords or coords[-1] != ungapped.length:
            raise FormatError(
                f"domain table covers 1..{ungapped.length} but reference "
                f"{reference.id!r} has {coords[-1] if coords else 0} residues"
            )
        projected: List[Tuple[int, int, str]] = []
        for column, coord in enumerate(coords, start=1):
            name = ungapped.domain_for(max(coord, 1))
            if projected and projected[-1][2] == name:
                start, _, _ = projected[-1]
                projected[-1] = (start, column, name)
            else:
                projected.append((column, column, name))
        return cls(projected)


def read_domain_table(path, sep: str = "\t") -> List[Tuple[int, int, str]]:
    """Read ``start``/``end``/``domain`` rows from a delimited file."""
    if not os.path.isfile(path):
        raise FormatError(f"domain table not found: {path}")
    df = pd.read_csv(path, sep=sep)
    missing = {"start", "end", "domain"} - set(df.columns)
    if missing:
        raise FormatError(f"{path}: domain table lacks column(s) {sorted(missing)}")
    df = df.sort_values("start")
    return [(int(row.start), int(row.end), str(row.domain)) for row in df.itertuples(index=False)]
