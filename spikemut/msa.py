"""In-memory multiple sequence alignment with column-indexed access.

An :class:`Alignment` is immutable: filtering and subsetting build a new one.
Positions are 1-based alignment columns throughout the package.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Tuple

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from .config import ALPHABET, GAP
from .errors import EmptySubsetError, FormatError, RangeError, ReferenceMissingError

__all__ = [
    "AlignedSequence",
    "Alignment",
    "load",
    "from_records",
    "column_slice",
    "subset",
    "require_reference",
    "reference_coordinates",
    "write_fasta",
]


@dataclass(frozen=True)
class AlignedSequence:
    id: str
    residues: str

    def __len__(self) -> int:
        return len(self.residues)

    def residue_at(self, position: int) -> str:
        return self.residues[position - 1]


class Alignment:
    """Ordered, equal-length sequences keyed by unique id.

    Raises
    ------
    FormatError
        On duplicate ids, unequal lengths or symbols outside ``ALPHABET``.
    """

    def __init__(self, sequences: Iterable[AlignedSequence]):
        self._sequences: Tuple[AlignedSequence, ...] = tuple(sequences)
        self._index: Dict[str, AlignedSequence] = {}
        for seq in self._sequences:
            if seq.id in self._index:
                raise FormatError(f"duplicate sequence id {seq.id!r}")
            self._index[seq.id] = seq
        self._length = len(self._sequences[0]) if self._sequences else 0
        for seq in self._sequences:
            if len(seq) != self._length:
                raise FormatError(
                    f"sequence {seq.id!r} has length {len(seq)}, "
                    f"expected {self._length} (first sequence "
                    f"{self._sequences[0].id!r})"
                )
            unknown = set(seq.residues) - ALPHABET
            if unknown:
                raise FormatError(
                    f"sequence {seq.id!r} contains unrecognised symbol(s) "
                    f"{''.join(sorted(unknown))!r}"
                )

    @property
    def length(self) -> int:
        """Alignment width L."""
        return self._length

    @property
    def ids(self) -> List[str]:
        return [s.id for s in self._sequences]

    def __len__(self) -> int:
        return len(self._sequences)

    def __iter__(self) -> Iterator[AlignedSequence]:
        return iter(self._sequences)

    def __contains__(self, seq_id: str) -> bool:
        return seq_id in self._index

    def __getitem__(self, seq_id: str) -> AlignedSequence:
        try:
            return self._index[seq_id]
        except KeyError:
            raise RangeError(f"sequence id {seq_id!r} not in alignment") from None

    def __repr__(self) -> str:
        return f"Alignment({len(self)} sequences x {self.length} columns)"

    def check_position(self, position: int) -> None:
        if not 1 <= position <= self._length:
            raise RangeError(
                f"position {position} outside alignment columns 1..{self._length}"
            )

    def where(self, keep) -> "Alignment":
        """New alignment with the sequences for which ``keep(seq)`` is true."""
        return Alignment(s for s in self._sequences if keep(s))


def from_records(records: Iterable[Tuple[str, str]]) -> Alignment:
    """Build an alignment from ``(id, residues)`` pairs, upper-casing residues."""
    return Alignment(AlignedSequence(seq_id, str(residues).upper())
                     for seq_id, residues in records)


def load(path, fmt: str = "fasta") -> Alignment:
    """Read a precomputed alignment with Biopython's ``SeqIO``."""
    if not os.path.isfile(path):
        raise FormatError(f"alignment file not found: {path}")
    try:
        records = [(rec.id, str(rec.seq)) for rec in SeqIO.parse(str(path), fmt)]
    except ValueError as exc:
        raise FormatError(f"{path}: cannot parse as {fmt}: {exc}") from exc
    if not records:
        raise FormatError(f"{path}: no sequences found")
    return from_records(records)


def column_slice(alignment: Alignment, position: int) -> Dict[str, str]:
    """``{sequence id: residue}`` for one 1-based column."""
    alignment.check_position(position)
    return {s.id: s.residue_at(position) for s in alignment}


def subset(alignment: Alignment, ids, label: str = "subset") -> Alignment:
    """Sequences of *alignment* whose id is in *ids*, alignment order kept.

    Raises
    ------
    EmptySubsetError
        If no id in *ids* is present; ``label`` names the group in the error.
    """
    wanted = set(ids)
    result = alignment.where(lambda s: s.id in wanted)
    if len(result) == 0:
        raise EmptySubsetError(label)
    return result


def require_reference(alignment: Alignment, reference_id: str) -> AlignedSequence:
    if reference_id not in alignment:
        raise ReferenceMissingError(reference_id)
    return alignment[reference_id]


def reference_coordinates(reference: AlignedSequence) -> List[int]:
    """Ungapped reference coordinate per column (0 before the first residue).

    Insertion columns, where the reference has a gap, repeat the coordinate
    of the preceding reference residue.
    """
    coords, current = [], 0
    for residue in reference.residues:
        if residue != GAP:
            current += 1
        coords.append(current)
    return coords


def write_fasta(alignment: Alignment, path) -> int:
    """Write *alignment* as FASTA; returns the number of records written."""
    records = (SeqRecord(Seq(s.residues), id=s.id, description="") for s in alignment)
    return SeqIO.write(records, str(path), "fasta")
