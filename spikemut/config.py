"""Defaults shared by the library and the pipeline driver."""
from Bio.Data.IUPACData import protein_letters

# ──────────────────────────────────────────────────────────────────────────────
# Alphabet
# ──────────────────────────────────────────────────────────────────────────────
GAP         = "-"
AMBIGUOUS   = "X"
AMINO_ACIDS = protein_letters            # the 20 standard residues
ALPHABET    = frozenset(AMINO_ACIDS + GAP + AMBIGUOUS)

# ──────────────────────────────────────────────────────────────────────────────
# Reference & thresholds
# ──────────────────────────────────────────────────────────────────────────────
REFERENCE_ID     = "YP_009724390.1"      # Wuhan-Hu-1 surface glycoprotein
GENE             = "S"                   # prefix of mutation labels, e.g. S:D614G
GAP_THRESHOLD    = 0.1
KEEP_THRESHOLD   = 0.02
DISPLAY_DECIMALS = 3
ALL_VARIANTS     = "all"

# ──────────────────────────────────────────────────────────────────────────────
# Metadata columns (Nextclade export)
# ──────────────────────────────────────────────────────────────────────────────
ID_COLUMN      = "seqName"
VARIANT_COLUMN = "Nextclade_pango"
HOST_COLUMN    = "host"
QC_COLUMN      = "qc.overallStatus"
HUMAN_HOSTS    = frozenset({"human", "homo sapiens"})

OUTDIR = "spike_mutation_output"
