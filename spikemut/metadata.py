"""Sequence metadata: variant membership and host/QC exclusions.

Metadata is one or more delimited exports (Nextclade CSV, GISAID TSV, ...)
keyed by sequence id. Several exports are concatenated into one table.
"""
import os
from collections import defaultdict

import pandas as pd

from .config import HOST_COLUMN, HUMAN_HOSTS, ID_COLUMN, QC_COLUMN, VARIANT_COLUMN
from .errors import FormatError


def read_metadata(paths, sep="\t"):
    """Load and concatenate metadata files, keeping the first file's header."""
    if isinstance(paths, (str, os.PathLike)):
        paths = [paths]
    dataframes = []
    for path in paths:
        if not os.path.isfile(path):
            raise FormatError(f"metadata file not found: {path}")
        dataframes.append(pd.read_csv(path, sep=sep, dtype=str))
    if not dataframes:
        raise FormatError("no metadata files given")
    return pd.concat(dataframes, ignore_index=True)


def _require(metadata, *columns):
    missing = [c for c in columns if c not in metadata.columns]
    if missing:
        raise FormatError(f"metadata lacks column(s) {missing}")


def variant_groups_of(metadata, id_column=ID_COLUMN, variant_column=VARIANT_COLUMN):
    """``{variant label: set of sequence ids}``; unlabelled rows are ignored."""
    _require(metadata, id_column, variant_column)
    groups = defaultdict(set)
    for seq_id, label in zip(metadata[id_column], metadata[variant_column]):
        if pd.isna(label) or str(label).strip() == "":
            continue
        groups[str(label).strip()].add(str(seq_id))
    return dict(groups)


def is_human(host):
    return str(host).strip().lower() in HUMAN_HOSTS


def excluded_by_host(metadata, host_predicate=is_human, id_column=ID_COLUMN, host_column=HOST_COLUMN):
    """Ids whose recorded host fails *host_predicate*.

    Rows without a host value are not excluded.
    """
    _require(metadata, id_column, host_column)
    return {
        str(seq_id)
        for seq_id, host in zip(metadata[id_column], metadata[host_column])
        if not pd.isna(host) and str(host).strip() and not host_predicate(host)
    }


def failed_qc(metadata, qc_column=QC_COLUMN, id_column=ID_COLUMN, good="good"):
    """Ids whose QC status is anything but *good*."""
    _require(metadata, id_column, qc_column)
    bad = metadata[metadata[qc_column] != good]
    return set(bad[id_column].astype(str))
