"""Charts of a ``SimulationSummary``.

matplotlib is imported lazily with the Agg backend so the module can be
imported on machines without a display.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lwwcrdt.simulation.summary import SimulationSummary


def plot_delivery_accounting(summary: SimulationSummary, output_dir: Path) -> Path:
    """Stacked bars of deliveries by status per node, beside add/remove counts.

    Returns:
        Path of the written PNG.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    totals = summary.node_totals()
    positions = range(len(totals))

    fig, (left, right) = plt.subplots(1, 2, figsize=(12, 4), sharex=True)

    bottom = [0] * len(totals)
    for column, color in (
        ("approved_delivered", "seagreen"),
        ("pending_delivered", "steelblue"),
        ("rejected_delivered", "coral"),
    ):
        values = totals[column].tolist()
        left.bar(positions, values, bottom=bottom, color=color, label=column.removesuffix("_delivered"))
        bottom = [b + v for b, v in zip(bottom, values)]
    left.set_title("Deliveries by status")
    left.set_ylabel("Messages")
    left.legend()

    width = 0.4
    right.bar([p - width / 2 for p in positions], totals["add_count"], width, color="seagreen", label="add-set")
    right.bar([p + width / 2 for p in positions], totals["remove_count"], width, color="coral", label="remove-set")
    right.set_title("CRDT set sizes")
    right.legend()

    for ax in (left, right):
        ax.set_xticks(list(positions))
        ax.set_xticklabels(totals.index, rotation=45, ha="right")
        ax.grid(True, axis="y", alpha=0.2)

    fig.suptitle(f"Replica accounting ({summary.objects} objects)", fontweight="bold")
    fig.tight_layout(rect=[0, 0, 1, 0.95])

    path = output_dir / "delivery_accounting.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_invalid_operations(summary: SimulationSummary, output_dir: Path) -> Path:
    """Histogram of quarantined operations per replica."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    counts = summary.to_dataframe()["invalid_count"]

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.hist(counts, bins=max(1, int(counts.max()) + 1) if len(counts) else 1, color="steelblue")
    ax.set_xlabel("Invalid operations")
    ax.set_ylabel("Replicas")
    ax.set_title("Quarantined operations per replica")
    ax.grid(True, alpha=0.2)
    fig.tight_layout()

    path = output_dir / "invalid_operations.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path
