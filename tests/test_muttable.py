"""Tests for mutation rollups (spikemut.muttable)."""

import pytest

from spikemut.consensus import build_consensus
from spikemut.domains import DomainMap
from spikemut.errors import EmptySubsetError, RangeError
from spikemut.genotypes import VariantGroup, compute_column_frequencies
from spikemut.msa import from_records
from spikemut.muttable import (
    domain_summary,
    genome_summary,
    mutation_table,
    pooled_summary,
    residue_summary,
    summaries_to_frame,
    summarize,
)


# ═══════════════════════════════════════════════════════════════════
# Per-position summaries
# ═══════════════════════════════════════════════════════════════════

class TestPooledSummary:

    def test_gap_mass_counts_as_conserved(self, gapped_alignment, gapped_domains):
        freqs = compute_column_frequencies(gapped_alignment, VariantGroup.of("v", ["seq1", "seq2"]),
                                           gapped_domains, "REF")
        rows = pooled_summary(freqs)
        col2 = rows[1]
        assert col2.residue is None
        assert col2.mutation_percentage == pytest.approx(50.0)
        assert col2.conserved_percentage == pytest.approx(50.0)
        assert col2.mutated == pytest.approx(1.0)
        # seq2's trailing gap is conserved, not missing
        assert rows[4].conserved_percentage == pytest.approx(100.0)

    def test_percentages_add_to_hundred(self, lineage_alignment, lineage_groups, lineage_domains):
        rows = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF")
        for row in rows:
            assert row.mutation_percentage + row.conserved_percentage == pytest.approx(100.0)

    def test_pooled_scope(self, lineage_alignment, lineage_groups, lineage_domains):
        rows = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF")
        assert {r.scope for r in rows} == {"all"}
        assert [r.mutation_percentage for r in rows] == pytest.approx([0.0, 25.0, 50.0, 0.0])
        assert rows[2].mutated == pytest.approx(2.0)
        assert rows[2].n_sequences == 4


class TestResidueSummary:

    def test_breakdown_per_residue(self, gapped_alignment, gapped_domains):
        freqs = compute_column_frequencies(gapped_alignment, VariantGroup.of("v", ["seq1", "seq2"]),
                                           gapped_domains, "REF")
        col2 = {r.residue: r for r in residue_summary(freqs) if r.position == 2}
        assert col2["C"].mutation_percentage == pytest.approx(50.0)
        assert col2["C"].conserved_percentage == 0.0
        assert col2["-"].mutation_percentage == 0.0
        assert col2["-"].conserved_percentage == pytest.approx(50.0)
        assert col2["C"].reference_residue == "-"

    def test_named_variant(self, lineage_alignment, lineage_groups, lineage_domains):
        rows = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF",
                         scope="A", by_residue=True)
        at2 = sorted((r.residue, r.mutation_percentage) for r in rows if r.position == 2)
        assert at2 == [("D", 0.0), ("G", pytest.approx(50.0))]
        assert {r.scope for r in rows} == {"A"}

    def test_residue_mass_totals_match_pooled(self, lineage_alignment, lineage_groups,
                                              lineage_domains):
        pooled = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF")
        by_res = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF",
                           by_residue=True)
        for row in pooled:
            parts = [r for r in by_res if r.position == row.position]
            assert sum(r.mutation_percentage for r in parts) == pytest.approx(row.mutation_percentage)


class TestSummarizeScope:

    def test_unknown_variant(self, lineage_alignment, lineage_groups, lineage_domains):
        with pytest.raises(RangeError, match="XBB"):
            summarize(lineage_alignment, lineage_groups, lineage_domains, "REF", scope="XBB")

    def test_empty_variant(self, lineage_alignment, lineage_domains):
        groups = {"C": VariantGroup.of("C", [])}
        with pytest.raises(EmptySubsetError):
            summarize(lineage_alignment, groups, lineage_domains, "REF", scope="C")


# ═══════════════════════════════════════════════════════════════════
# Domain & genome rollups
# ═══════════════════════════════════════════════════════════════════

class TestRollups:

    def test_domain_summary(self, lineage_alignment, lineage_groups, lineage_domains):
        rows = domain_summary(summarize(lineage_alignment, lineage_groups, lineage_domains, "REF"))
        by_domain = {r.domain: r for r in rows}
        assert list(by_domain) == ["NTD", "RBD"]
        assert by_domain["NTD"].positions == 2
        assert by_domain["NTD"].mutated_positions == 1
        assert by_domain["NTD"].mean_mutation_percentage == pytest.approx(12.5)
        assert by_domain["RBD"].max_mutation_percentage == pytest.approx(50.0)

    def test_threshold_applies(self, lineage_alignment, lineage_groups, lineage_domains):
        pooled = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF")
        rows = domain_summary(pooled, threshold=0.3)
        assert {r.domain: r.mutated_positions for r in rows} == {"NTD": 0, "RBD": 1}

    def test_genome_summary(self, lineage_alignment, lineage_groups, lineage_domains):
        pooled = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF")
        (row,) = genome_summary(pooled)
        assert row.domain == "genome"
        assert row.positions == 4
        assert row.mutated_positions == 2

    def test_residue_rows_rejected(self, lineage_alignment, lineage_groups, lineage_domains):
        by_res = summarize(lineage_alignment, lineage_groups, lineage_domains, "REF",
                           by_residue=True)
        with pytest.raises(ValueError):
            domain_summary(by_res)


# ═══════════════════════════════════════════════════════════════════
# Lineage mutation table & presentation
# ═══════════════════════════════════════════════════════════════════

class TestMutationTable:

    def test_lineage_by_mutation(self, lineage_alignment, lineage_groups, lineage_domains):
        consensus = {label: build_consensus(lineage_alignment, group, lineage_domains, "REF")
                     for label, group in lineage_groups.items()}
        df = mutation_table(consensus)
        assert list(df.columns) == ["Lineage", "S:G3S"]
        assert df.set_index("Lineage")["S:G3S"].to_dict() == {"A": "", "B": "X"}

    def test_columns_ordered_by_position(self):
        aln = from_records([("REF", "ANAAAAAAAA"), ("s", "AKAAAAAAAG")])
        records = build_consensus(aln, VariantGroup.of("v", ["s"]),
                                  DomainMap([(1, 10, "d")]), "REF")
        df = mutation_table({"v": records})
        assert list(df.columns) == ["Lineage", "S:N2K", "S:A10G"]

    def test_gene_prefix(self, lineage_alignment, lineage_groups, lineage_domains):
        consensus = {"B": build_consensus(lineage_alignment, lineage_groups["B"],
                                          lineage_domains, "REF")}
        assert list(mutation_table(consensus, gene="N").columns) == ["Lineage", "N:G3S"]
        assert list(mutation_table(consensus, gene="").columns) == ["Lineage", "G3S"]


class TestSummariesToFrame:

    def test_rounding(self):
        aln = from_records([("REF", "AAAA"), ("s1", "AAAA"), ("s2", "AAAA"), ("s3", "GAAA")])
        rows = summarize(aln, {}, DomainMap([(1, 4, "d")]), "REF")
        df = summaries_to_frame(rows)
        assert df.loc[0, "mutation_percentage"] == 33.333
        assert df.loc[0, "conserved_percentage"] == 66.667
        assert df["residue"].isna().all()
