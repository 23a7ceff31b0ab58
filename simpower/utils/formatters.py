"""
Text formatting of SimPower results for console output.
"""

from typing import Optional

__all__ = []


def _format_results(table, target_power: Optional[float] = None) -> str:
    """Render a ``ResultsTable`` as a fixed-width text table.

    Rows whose estimate rests on fewer than the requested trials are
    flagged with ``*``; sample sizes without a row are listed with the
    reason.
    """
    names = list(table.outcome_names)
    width = max([12] + [len(n) + 2 for n in names])

    lines = []
    meta = table.metadata
    if meta:
        lines.append(f"Trial: {meta.get('trial', '?')}")
        lines.append(
            f"Criterion: {meta.get('criterion', '?')} | Iterations: {meta.get('iterations', '?')} | "
            f"Seed: {meta.get('seed', '?')} | Workers: {meta.get('n_jobs', '?')}"
        )
        lines.append("")

    header = f"{'N':>8}" + "".join(f"{name:>{width}}" for name in names) + f"{'valid':>8}{'failed':>8}"
    lines.append(header)
    lines.append("-" * len(header))

    for row in table:
        marker = " " if row.complete else "*"
        cells = "".join(f"{row.powers[n] * 100:>{width - 1}.1f}%" for n in names)
        lines.append(f"{row.sample_size:>7}{marker}" + cells + f"{row.n_valid:>8}{row.n_failed:>8}")

    if table.incomplete:
        lines.append("")
        lines.append("* estimate based on fewer valid trials than requested (failed fits excluded)")

    for sample_size, error in sorted(table.aborted.items()):
        lines.append(f"N={sample_size}: no estimate ({type(error).__name__}: {error})")

    if target_power is not None and len(table):
        lines.append("")
        for name in names:
            achieved = table.first_achieved(target_power, name)
            if achieved > 0:
                lines.append(f"{name}: target power {target_power:.0%} first reached at N={achieved}")
            else:
                lines.append(f"{name}: target power {target_power:.0%} not reached in tested range")

    return "\n".join(lines)


def _format_mc_error(frame) -> str:
    """Render the output of ``monte_carlo_error`` as text."""
    lines = [f"{'iterations':>10}{'mean':>10}{'sd':>10}{'expected':>10}"]
    lines.append("-" * len(lines[0]))
    for rec in frame.to_dict("records"):
        lines.append(f"{rec['iterations']:>10}{rec['mean_power']:>10.4f}{rec['sd_power']:>10.4f}{rec['expected_sd']:>10.4f}")
    return "\n".join(lines)
