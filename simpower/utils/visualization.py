"""
Visualization utilities for SimPower.

Plotting functions for power curves and Monte Carlo error studies.
"""

from typing import Optional, Sequence

import numpy as np

__all__ = []


def _get_pyplot():
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib required for plotting: pip install matplotlib") from None
    return plt


def _create_power_plot(
    table,
    target_power: float = 0.8,
    outcomes: Optional[Sequence[str]] = None,
    title: str = "Power Analysis",
    show: bool = True,
):
    """Create a sample-size vs. power line plot with achievement markers.

    Draws one line per outcome, a horizontal dashed line at the target
    power, and annotates the first sample size that reaches it.

    Args:
        table: ``ResultsTable`` from a sweep.
        target_power: Target power (0–1), drawn as reference line.
        outcomes: Outcome names to plot (default: all).
        title: Plot title.
        show: Call ``plt.show()`` before returning.

    Returns:
        The matplotlib ``Figure``.
    """
    plt = _get_pyplot()

    names = list(outcomes) if outcomes is not None else list(table.outcome_names)
    sample_sizes = table.sample_sizes

    fig, ax = plt.subplots(figsize=(12, 8))
    colors = plt.get_cmap("Set1")(np.linspace(0, 1, max(len(names), 1)))

    for i, name in enumerate(names):
        powers = table.powers(name)
        ax.plot(sample_sizes, powers, "o-", color=colors[i], label=name, linewidth=2, markersize=4)

        achieved = table.first_achieved(target_power, name)
        if achieved > 0:
            achieved_power = powers[sample_sizes.index(achieved)]
            ax.plot(
                achieved,
                achieved_power,
                "s",
                color=colors[i],
                markersize=10,
                markerfacecolor="white",
                markeredgewidth=2,
                markeredgecolor=colors[i],
            )
            ax.annotate(
                f"N={achieved}",
                xy=(achieved, achieved_power),
                xytext=(10, 10),
                textcoords="offset points",
                bbox={"boxstyle": "round,pad=0.3", "facecolor": colors[i], "alpha": 0.3},
                arrowprops={"arrowstyle": "->", "color": colors[i]},
            )

    ax.axhline(y=target_power, color="red", linestyle="--", linewidth=2, label=f"Target Power ({target_power:.0%})")

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel("Sample Size", fontsize=12)
    ax.set_ylabel("Power", fontsize=12)
    ax.grid(True, alpha=0.3)
    ax.legend(bbox_to_anchor=(1.05, 1), loc="upper left")
    ax.set_ylim(0, 1.05)

    plt.tight_layout()
    if show:
        plt.show()
    return fig


def _create_mc_error_plot(frame, tolerance: Optional[float] = None, show: bool = True):
    """Plot the spread of repeated power estimates against the iteration count.

    Args:
        frame: Output of ``monte_carlo_error``.
        tolerance: Optional Monte Carlo error tolerance drawn as reference.
        show: Call ``plt.show()`` before returning.

    Returns:
        The matplotlib ``Figure``.
    """
    plt = _get_pyplot()

    fig, (ax_est, ax_sd) = plt.subplots(1, 2, figsize=(12, 5))

    estimates = frame.attrs.get("estimates", {})
    for k, values in estimates.items():
        ax_est.scatter(np.full(len(values), k), values, alpha=0.5, s=12)
    ax_est.set_xlabel("Iterations")
    ax_est.set_ylabel("Power estimate")
    ax_est.set_title("Repeated estimates")
    ax_est.grid(True, alpha=0.3)

    ax_sd.plot(frame["iterations"], frame["sd_power"], "o-", label="observed SD")
    ax_sd.plot(frame["iterations"], frame["expected_sd"], "--", label="binomial SD")
    if tolerance is not None:
        ax_sd.axhline(y=tolerance, color="red", linestyle=":", label=f"tolerance ({tolerance:g})")
    ax_sd.set_xlabel("Iterations")
    ax_sd.set_ylabel("Monte Carlo error")
    ax_sd.set_title("Monte Carlo error")
    ax_sd.grid(True, alpha=0.3)
    ax_sd.legend()

    plt.tight_layout()
    if show:
        plt.show()
    return fig
