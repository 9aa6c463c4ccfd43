"""Chart generation using Plotly."""

from typing import List

import pandas as pd
import plotly.graph_objects as go

from ..engine.accounting import VaultSnapshot
from ..engine.voting_power import LockRecord, VotingPowerCalculator

THEME = {
    "text": "#e8eaed",
    "text_secondary": "#9aa0a6",
    "grid": "rgba(30, 33, 36, 0.8)",
    "cyan": "#00d4ff",
    "cyan_fill": "rgba(0, 212, 255, 0.12)",
    "amber": "#ffab00",
    "amber_fill": "rgba(255, 171, 0, 0.12)",
    "red": "#ff5252",
    "green": "#00e676",
}


def apply_dark_layout(fig: go.Figure, title: str, x_title: str, y_title: str, showlegend: bool = True) -> None:
    """Apply dark theme layout for charts."""
    fig.update_layout(
        title={
            "text": title,
            "x": 0,
            "xanchor": "left",
            "font": {"size": 11, "color": THEME["text_secondary"]}
        },
        xaxis_title=x_title,
        yaxis_title=y_title,
        hovermode="x unified",
        template="plotly_dark",
        height=340,
        margin=dict(l=50, r=20, t=40, b=40),
        showlegend=showlegend,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
        plot_bgcolor="rgba(8, 9, 10, 1)",
        paper_bgcolor="rgba(8, 9, 10, 1)",
        font={"color": THEME["text"], "size": 11},
        xaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"]),
        yaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"])
    )


def create_voting_power_chart(calculator: VotingPowerCalculator, lock: LockRecord, padding: int = 5) -> go.Figure:
    """Voting power of one lock across its window, with the principal for reference."""
    indices = range(max(0, lock.start_index - padding), lock.end_index + padding + 1)
    points = calculator.curve(lock, indices)

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=[t for t, _ in points],
        y=[p for _, p in points],
        name=f'Voting power ({calculator.policy.value})',
        mode='lines',
        line=dict(color=THEME["cyan"], width=2, shape='hv'),
        fill='tozeroy',
        fillcolor=THEME["cyan_fill"]
    ))

    fig.add_hline(
        y=calculator.upper_bound(lock),
        line_dash="dot",
        line_color=THEME["text_secondary"],
        line_width=1
    )
    fig.add_vline(x=lock.end_index, line_dash="dash", line_color=THEME["amber"], line_width=1)

    apply_dark_layout(fig, "Voting Power", "Time index", "Power")

    return fig


def create_locked_chart(snapshots: List[VaultSnapshot]) -> go.Figure:
    """Locked principal versus total voting power over time."""
    times = [s.t for s in snapshots]

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=times,
        y=[s.total_locked_tokens for s in snapshots],
        name='Locked principal',
        mode='lines',
        line=dict(color=THEME["amber"], width=2),
        fill='tozeroy',
        fillcolor=THEME["amber_fill"]
    ))

    fig.add_trace(go.Scatter(
        x=times,
        y=[s.total_voting_power for s in snapshots],
        name='Voting power',
        mode='lines',
        line=dict(color=THEME["cyan"], width=2, dash='dot')
    ))

    apply_dark_layout(fig, "Locked Supply", "Time index", "Units")

    return fig


def create_round_payout_chart(payouts: pd.DataFrame) -> go.Figure:
    """Total paid per distribution round, split by number of recipients."""
    fig = go.Figure()

    if payouts.empty:
        apply_dark_layout(fig, "Round Payouts", "Round", "Paid", showlegend=False)
        return fig

    per_round = payouts.groupby('round_id').agg(paid=('amount', 'sum'), recipients=('user', 'nunique'))

    fig.add_trace(go.Bar(
        x=per_round.index.tolist(),
        y=per_round['paid'].tolist(),
        name='Paid',
        marker_color=THEME["green"],
        customdata=per_round['recipients'].tolist(),
        hovertemplate="Round %{x}<br>Paid %{y:,}<br>Recipients %{customdata}<extra></extra>"
    ))

    apply_dark_layout(fig, "Round Payouts", "Round", "Paid")

    return fig
