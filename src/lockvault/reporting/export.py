"""Export functionality for CSV and JSON."""

import json
from dataclasses import asdict
from typing import Iterable, List

import pandas as pd

from ..engine.distribution import DistributionRound
from ..engine.events import RewardDistributed, VaultEvent
from ..simulation.runner import SimulationResult


def events_frame(events: Iterable[VaultEvent]) -> pd.DataFrame:
    """One row per notification; columns are the union of event fields."""
    df = pd.DataFrame([e.to_dict() for e in events])
    if df.empty:
        return pd.DataFrame(columns=['event', 'time_index'])
    leading = ['event', 'time_index']
    return df[leading + [c for c in df.columns if c not in leading]]


def payouts_frame(events: Iterable[VaultEvent]) -> pd.DataFrame:
    """Reward payouts with per-round share of the round total."""
    rows = [e.to_dict() for e in events if isinstance(e, RewardDistributed)]
    columns = ['round_id', 'token', 'user', 'amount', 'time_index']
    if not rows:
        return pd.DataFrame(columns=columns + ['round_share'])
    df = pd.DataFrame(rows)[columns]
    df['round_share'] = df['amount'] / df.groupby('round_id')['amount'].transform('sum')
    return df


def rounds_frame(rounds: List[DistributionRound]) -> pd.DataFrame:
    """Round audit trail without the per-member snapshot data."""
    rows = []
    for round_ in rounds:
        data = asdict(round_)
        data.pop('members')
        data.pop('snapshot_power')
        data['complete'] = round_.is_complete
        data['residual'] = round_.residual
        rows.append(data)
    return pd.DataFrame(rows)


def states_frame(result: SimulationResult) -> pd.DataFrame:
    """Snapshot and per-step metrics, one row per time index."""
    data = []
    for snapshot in result.snapshots:
        data.append({
            't': snapshot.t,
            'total_locked_tokens': snapshot.total_locked_tokens,
            'active_users': snapshot.active_users,
            'total_voting_power': snapshot.total_voting_power,
            'lock_asset_balance': snapshot.lock_asset_balance,
        })

    # Add metrics
    for i, metrics in enumerate(result.metrics_over_time):
        if i < len(data):
            data[i].update(metrics)

    return pd.DataFrame(data)


def export_csv(result: SimulationResult, filepath: str):
    """Export simulation states to CSV."""
    states_frame(result).to_csv(filepath, index=False)


def export_events_csv(events: Iterable[VaultEvent], filepath: str):
    """Export notifications to CSV."""
    events_frame(events).to_csv(filepath, index=False)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'metrics_over_time': result.metrics_over_time,
        'final_metrics': result.final_metrics,
        'rounds': rounds_frame(result.rounds).to_dict(orient='records'),
        'conservation_errors': result.conservation_errors,
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2, default=_json_default)


def _json_default(value):
    # numpy scalars from pandas records
    if hasattr(value, 'item'):
        return value.item()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
