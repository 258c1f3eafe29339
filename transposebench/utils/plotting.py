"""
Plotting utilities for benchmark results.
"""
import matplotlib.pyplot as plt
from typing import Any, Dict, Optional, Tuple


def plot_variant_bandwidth(
    results: Dict[str, Dict[str, Any]],
    title: str = "Effective Bandwidth",
    output_file: Optional[str] = None,
    figsize: Tuple[int, int] = (10, 6),
    reference_variant: Optional[str] = 'copy',
) -> plt.Figure:
    """
    Bar chart of effective bandwidth per kernel variant.

    Args:
        results: Per-variant results as produced by TransposeBandwidthTest, in
                 execution order. Each entry has 'label', 'status' and 'bandwidth_gbs'
        title: Plot title
        output_file: If provided, save plot to this file
        figsize: Figure size (width, height) in inches
        reference_variant: Variant drawn as a horizontal reference line (the copy
                           upper bound); skipped if missing or failed

    Returns:
        Matplotlib figure object
    """
    if not results:
        raise ValueError("No results to plot")

    fig, ax = plt.subplots(figsize=figsize)
    colors = plt.cm.tab10.colors

    labels = []
    for i, (name, rec) in enumerate(results.items()):
        labels.append(rec.get('label', name))
        if rec['status'] == 'passed':
            bar = ax.bar(i, rec['bandwidth_gbs'], color=colors[i % len(colors)])
            ax.bar_label(bar, fmt='%.2f')
        else:
            ax.bar(i, 0, color='lightgray', edgecolor='red', hatch='//')
            ax.annotate('FAILED', (i, 0), ha='center', va='bottom', color='red')

    reference = results.get(reference_variant) if reference_variant else None
    if reference is not None and reference['status'] == 'passed':
        ax.axhline(reference['bandwidth_gbs'], linestyle='--', linewidth=0.8, color='gray',
                   label=f"{reference.get('label', reference_variant)} bound")
        ax.legend(loc='best')

    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=20, ha='right')
    ax.set_ylabel('Bandwidth (GB/s)')
    ax.grid(True, axis='y', which='major', linestyle='--', linewidth=0.5, alpha=0.7)

    plt.title(title)
    plt.tight_layout()

    if output_file:
        plt.savefig(output_file, dpi=300, bbox_inches='tight')
        print(f"Plot saved to {output_file}")

    return fig
