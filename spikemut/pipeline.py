#!/usr/bin/env python3
"""
pipeline.py

1) Load the precomputed spike MSA (FASTA by default).
2) Read Nextclade/GISAID metadata → variant groups and non-human hosts.
3) Drop non-human (and optionally QC-failed) sequences, then sequences
   above the gap threshold (the reference is always kept).
4) Per variant (and pooled "all"): column frequencies, consensus,
   pooled and per-residue mutation summaries, domain rollups.
5) Write CSV tables, the filtered alignment and consensus FASTA, and plots
   (heatmap + domain bars) into OUTDIR.

Usage:
    python -m spikemut.pipeline --alignment spike_aligned.fasta \
        --metadata nextclade.tsv --outdir spike_mutation_output
"""
import argparse
import os
import sys

from . import cleaning, config, msa
from .consensus import consensus_from_frequencies, consensus_sequence, consensus_to_frame
from .domains import SPIKE_DOMAINS, DomainMap, read_domain_table
from .errors import SpikeMutError
from .genotypes import (
    compute_column_frequencies,
    frequencies_to_frame,
    per_variant,
    pooled_group,
    surfaced_mutations,
    variant_groups_in,
)
from .metadata import excluded_by_host, failed_qc, read_metadata, variant_groups_of
from .muttable import (
    domain_summary,
    genome_summary,
    mutation_table,
    pooled_summary,
    residue_summary,
    summaries_to_frame,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Per-position protein mutation statistics across variants.")
    parser.add_argument("--alignment", required=True, help="Aligned protein sequences")
    parser.add_argument("--format", default="fasta", help="Biopython SeqIO alignment format")
    parser.add_argument("--metadata", action="append", required=True,
                        help="Metadata table (repeat to concatenate several)")
    parser.add_argument("--sep", default="\t", help="Metadata delimiter (default: tab)")
    parser.add_argument("--domains", help="TSV of start/end/domain in reference coordinates "
                                          "(default: built-in spike domains)")
    parser.add_argument("--reference-id", default=config.REFERENCE_ID)
    parser.add_argument("--gene", default=config.GENE,
                        help="Prefix of mutation labels, e.g. S for S:D614G (default: %(default)s)")
    parser.add_argument("--gap-threshold", type=float, default=config.GAP_THRESHOLD)
    parser.add_argument("--keep-threshold", type=float, default=config.KEEP_THRESHOLD)
    parser.add_argument("--id-column", default=config.ID_COLUMN)
    parser.add_argument("--variant-column", default=config.VARIANT_COLUMN)
    parser.add_argument("--host-column", default=config.HOST_COLUMN,
                        help="Metadata column holding the host species; Nextclade "
                             "exports have none, in which case the host filter is "
                             "skipped with a warning (default: %(default)s)")
    parser.add_argument("--all-hosts", action="store_true", help="Skip the host filter")
    parser.add_argument("--qc-good-only", action="store_true",
                        help="Also drop sequences whose Nextclade QC status is not good")
    parser.add_argument("--outdir", default=config.OUTDIR)
    parser.add_argument("--no-plots", action="store_true")
    return parser.parse_args(argv)


def run(args):
    os.makedirs(args.outdir, exist_ok=True)
    out = lambda name: os.path.join(args.outdir, name)

    # ──────────────────────────────────────────────────────────────────────────
    # 1) Load alignment & metadata
    # ──────────────────────────────────────────────────────────────────────────
    print(f"→ Loading alignment {args.alignment} …")
    alignment = msa.load(args.alignment, args.format)
    reference = msa.require_reference(alignment, args.reference_id)
    print(f"   • {len(alignment)} sequences × {alignment.length} columns.")

    metadata = read_metadata(args.metadata, sep=args.sep)
    print(f"→ Loaded {len(metadata)} metadata rows.")

    # ──────────────────────────────────────────────────────────────────────────
    # 2) Host & gap filtering
    # ──────────────────────────────────────────────────────────────────────────
    if args.all_hosts:
        print("   • host filter disabled (--all-hosts).")
    elif args.host_column not in metadata.columns:
        print(f"WARNING: metadata has no {args.host_column!r} column; host filter skipped",
              file=sys.stderr)
    else:
        excluded = excluded_by_host(metadata, id_column=args.id_column,
                                    host_column=args.host_column)
        alignment = cleaning.filter_by_exclusion_set(alignment, excluded, args.reference_id)
        print(f"   • {len(alignment)} sequences left after host filter.")

    if args.qc_good_only:
        failed = failed_qc(metadata, id_column=args.id_column)
        alignment = cleaning.filter_by_exclusion_set(alignment, failed, args.reference_id)
        print(f"   • {len(alignment)} sequences left with qc=good.")

    alignment = cleaning.filter_by_gap(alignment, args.gap_threshold, args.reference_id)
    print(f"   • {len(alignment)} sequences left with gap fraction ≤ {args.gap_threshold}.")
    msa.write_fasta(alignment, out("filtered_alignment.fasta"))

    # ──────────────────────────────────────────────────────────────────────────
    # 3) Domains & variant groups
    # ──────────────────────────────────────────────────────────────────────────
    ranges = read_domain_table(args.domains) if args.domains else SPIKE_DOMAINS
    domain_map = DomainMap.for_reference(ranges, reference)

    groups = variant_groups_in(
        alignment,
        variant_groups_of(metadata, id_column=args.id_column,
                          variant_column=args.variant_column),
        args.reference_id,
    )
    print(f"→ {len(groups)} variants in metadata.")

    # ──────────────────────────────────────────────────────────────────────────
    # 4) Frequencies per variant (+ pooled "all")
    # ──────────────────────────────────────────────────────────────────────────
    frequencies, skipped = per_variant(compute_column_frequencies, alignment, groups,
                                       domain_map, args.reference_id)
    for exc in skipped.values():
        print(f"WARNING: skipping {exc}", file=sys.stderr)
    frequencies[config.ALL_VARIANTS] = compute_column_frequencies(
        alignment, pooled_group(alignment, args.reference_id), domain_map, args.reference_id)

    all_freqs = [cf for label in frequencies for cf in frequencies[label]]
    frequencies_to_frame(all_freqs, args.keep_threshold).to_csv(out("column_frequencies.csv"), index=False)
    n_kept = len(surfaced_mutations(frequencies[config.ALL_VARIANTS], args.keep_threshold))
    print(f"   • {n_kept} mutations at ≥ {args.keep_threshold:.0%} across all sequences.")

    # ──────────────────────────────────────────────────────────────────────────
    # 5) Consensus & mutation tables
    # ──────────────────────────────────────────────────────────────────────────
    print("→ Building consensus sequences and mutation summaries …")
    consensus = {label: consensus_from_frequencies(freqs) for label, freqs in frequencies.items()}
    consensus_to_frame([r for recs in consensus.values() for r in recs]).to_csv(
        out("consensus.csv"), index=False)
    msa.write_fasta(
        msa.from_records((label, consensus_sequence(recs)) for label, recs in consensus.items()),
        out("consensus.fasta"))
    mutation_table({label: recs for label, recs in consensus.items()
                    if label != config.ALL_VARIANTS},
                   gene=args.gene).to_csv(out("muttable.csv"), index=False)

    pooled = {label: pooled_summary(freqs) for label, freqs in frequencies.items()}
    pooled_rows = [s for rows in pooled.values() for s in rows]
    summaries_to_frame(pooled_rows).to_csv(out("mutation_summary.csv"), index=False)
    summaries_to_frame(
        [s for freqs in frequencies.values() for s in residue_summary(freqs)]
    ).to_csv(out("mutation_summary_by_residue.csv"), index=False)

    domains = domain_summary(pooled_rows, args.keep_threshold)
    summaries_to_frame(domains + genome_summary(pooled_rows, args.keep_threshold)).to_csv(
        out("domain_summary.csv"), index=False)

    # ──────────────────────────────────────────────────────────────────────────
    # 6) Plots
    # ──────────────────────────────────────────────────────────────────────────
    if not args.no_plots:
        from .plots import plot_domain_summary, plot_mutation_heatmap
        print("→ Plotting …")
        plot_mutation_heatmap(pooled, out("mutation_heatmap"), args.keep_threshold,
                              gene=args.gene)
        plot_domain_summary(domains, out("domain_summary"), gene=args.gene)

    print(f"→ Wrote tables to {args.outdir}")
    return 0


def main(argv=None):
    args = parse_args(argv)
    try:
        return run(args)
    except SpikeMutError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
