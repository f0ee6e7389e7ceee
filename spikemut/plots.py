"""Figures for the mutation tables (PDF + 300-dpi PNG each)."""
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .config import GENE, KEEP_THRESHOLD

plt.style.use("default")
plt.rcParams["image.cmap"] = "viridis"
plt.rcParams["font.size"]  = 10


def _titled(title, gene):
    return f"{gene} {title}" if gene else title[0].upper() + title[1:]


def _save(fig, stem):
    paths = [f"{stem}.pdf", f"{stem}.png"]
    fig.savefig(paths[0], bbox_inches="tight")
    fig.savefig(paths[1], bbox_inches="tight", dpi=300)
    plt.close(fig)
    return paths


def plot_mutation_heatmap(pooled_by_variant, stem, threshold=KEEP_THRESHOLD, gene=GENE):
    """Variant × position heatmap of pooled mutation percentage.

    Only positions where some variant reaches *threshold* are drawn.
    Returns the written paths, or an empty list when nothing qualifies.
    """
    cutoff = 100.0 * threshold
    variants = sorted(pooled_by_variant)
    by_pos = {v: {s.position: s for s in pooled_by_variant[v]} for v in variants}
    positions = sorted({p for v in variants for p, s in by_pos[v].items()
                        if s.mutation_percentage >= cutoff})
    if not positions:
        return []

    matrix = [[by_pos[v][p].mutation_percentage if p in by_pos[v] else 0.0
               for p in positions] for v in variants]

    fig_width  = max(8, 0.25 * len(positions))
    fig_height = max(3, 0.4 * len(variants))
    fig, ax = plt.subplots(figsize=(fig_width, fig_height))
    im = ax.imshow(matrix, aspect="auto", vmin=0, vmax=100)

    labels = []
    for p in positions:
        ref = next(by_pos[v][p].reference_residue for v in variants if p in by_pos[v])
        labels.append(f"{ref}{p}")
    ax.set_xticks(range(len(positions)))
    ax.set_xticklabels(labels, rotation=90, fontsize=7)
    ax.set_yticks(range(len(variants)))
    ax.set_yticklabels(variants)
    ax.set_xlabel("Alignment position")
    ax.set_title(_titled("mutation frequency by variant", gene), fontweight="bold")
    fig.colorbar(im, ax=ax, label="% mutated")
    fig.tight_layout()
    return _save(fig, stem)


def plot_domain_summary(domain_rows, stem, gene=GENE):
    """Grouped bars of mean mutation percentage per domain, one bar per scope."""
    if not domain_rows:
        return []
    domains, scopes = [], []
    for row in domain_rows:
        if row.domain not in domains:
            domains.append(row.domain)
        if row.scope not in scopes:
            scopes.append(row.scope)
    value = {(r.scope, r.domain): r.mean_mutation_percentage for r in domain_rows}

    width = 0.8 / len(scopes)
    fig, ax = plt.subplots(figsize=(max(8, 0.8 * len(domains)), 5))
    for i, scope in enumerate(scopes):
        xs = [d + i * width for d in range(len(domains))]
        ax.bar(xs, [value.get((scope, dom), 0.0) for dom in domains],
               width=width, label=scope)
    ax.set_xticks([d + 0.4 - width / 2 for d in range(len(domains))])
    ax.set_xticklabels(domains, rotation=45, ha="right")
    ax.set_ylabel("Mean % mutated per position")
    ax.set_title(_titled("mutation load by domain", gene), fontweight="bold")
    ax.legend(fontsize=8, ncol=max(1, len(scopes) // 10))
    fig.tight_layout()
    return _save(fig, stem)

