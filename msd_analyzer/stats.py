"""
Weighted Statistics Module

Weighted mean and standard error of a weighted mean, used to combine
per-track curves with unequal sample counts.
"""

import numpy as np


def weighted_mean(x, w) -> float:
    """
    Weighted mean sum(x * w) / sum(w).

    Parameters
    ----------
    x : array_like
        Values
    w : array_like
        Non-negative weights, same length as x

    Returns
    -------
    mean : float
    """
    x = np.asarray(x, dtype=float)
    w = np.asarray(w, dtype=float)
    total = np.sum(w)
    if total == 0:
        raise ValueError("Weights sum to zero")
    return float(np.sum(x * w) / total)


def weighted_standard_error(x, w) -> float:
    """
    Standard error of a weighted mean.

    Uses the closed-form unbiased estimator for independent observations
    with unequal weights (Cochran 1977; Gatz & Smith 1995):

        se^2 = n / ((n-1) * W^2) * [ sum((w*x - wb*xb)^2)
                                    - 2*xb * sum((w - wb) * (w*x - wb*xb))
                                    + xb^2 * sum((w - wb)^2) ]

    where W = sum(w), wb = mean(w) and xb is the weighted mean.

    Parameters
    ----------
    x : array_like
        Values
    w : array_like
        Non-negative weights, same length as x

    Returns
    -------
    se : float
        Standard error; 0.0 for a single observation, where the
        estimator is undefined
    """
    x = np.asarray(x, dtype=float)
    w = np.asarray(w, dtype=float)
    n = len(x)
    if n < 2:
        return 0.0

    w_bar = np.mean(w)
    x_bar = weighted_mean(x, w)
    wx_dev = w * x - w_bar * x_bar
    w_dev = w - w_bar

    se2 = n / ((n - 1) * np.sum(w) ** 2) * (
        np.sum(wx_dev ** 2)
        - 2 * x_bar * np.sum(w_dev * wx_dev)
        + x_bar ** 2 * np.sum(w_dev ** 2)
    )
    # The bracket is a sum of squares; only round-off can push it below zero
    return float(np.sqrt(max(se2, 0.0)))
