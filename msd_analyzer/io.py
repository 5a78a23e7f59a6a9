"""
I/O Utilities Module

CSV export of curves and trajectories.
"""

import pandas as pd
from pathlib import Path
from typing import Sequence, Union

from .ensemble import EnsembleCurve
from .trajectory import Trajectory


def trajectories_to_dataframe(trajectories: Sequence[Trajectory]) -> pd.DataFrame:
    """
    Flatten trajectories into one long table.

    Returns
    -------
    df : pandas.DataFrame
        Columns: trajectory_id, time, x0, ..., x{d-1}
    """
    data = []
    for traj in trajectories:
        for t, position in zip(traj.time, traj.positions):
            row = {'trajectory_id': traj.id, 'time': t}
            for k, x in enumerate(position):
                row[f'x{k}'] = x
            data.append(row)
    return pd.DataFrame(data)


def save_csv_trajectories(trajectories: Sequence[Trajectory],
                          path: Union[str, Path]) -> None:
    """
    Save trajectories to CSV file.

    Parameters
    ----------
    trajectories : sequence of Trajectory
        Trajectories to save, e.g. the drift-corrected ones
    path : str or Path
        Output path
    """
    trajectories_to_dataframe(trajectories).to_csv(path, index=False)


def save_curve_csv(curve: EnsembleCurve,
                   path: Union[str, Path],
                   time_units: str = '') -> None:
    """
    Save an ensemble curve to CSV file.

    Parameters
    ----------
    curve : EnsembleCurve
        Curve to save
    path : str or Path
        Output path
    time_units : str
        If given, appended to the lag column name, e.g. 'lag (s)'
    """
    df = curve.to_dataframe()
    if time_units:
        df = df.rename(columns={'lag': f'lag ({time_units})'})
    df.to_csv(path, index=False)
