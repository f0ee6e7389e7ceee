import pytest

from spikemut.domains import DomainMap
from spikemut.genotypes import VariantGroup
from spikemut.msa import from_records


@pytest.fixture
def gapped_alignment():
    """Reference with a gap column; seq2 is missing two residues."""
    return from_records([
        ("REF", "A-CDE"),
        ("seq1", "ACCDE"),
        ("seq2", "A-CD-"),
    ])


@pytest.fixture
def gapped_domains():
    return DomainMap([(1, 2, "N"), (3, 5, "C")])


@pytest.fixture
def lineage_alignment():
    """Two lineages over four columns; A ties at column 2, B carries G3S."""
    return from_records([
        ("REF", "ADGK"),
        ("a1", "ADGK"),
        ("a2", "AGGK"),
        ("b1", "ADSK"),
        ("b2", "ADSK"),
    ])


@pytest.fixture
def lineage_groups():
    return {
        "A": VariantGroup.of("A", ["a1", "a2"]),
        "B": VariantGroup.of("B", ["b1", "b2"]),
    }


@pytest.fixture
def lineage_domains():
    return DomainMap([(1, 2, "NTD"), (3, 4, "RBD")])
