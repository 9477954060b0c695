# -*- coding: utf-8 -*-
"""
Running statistics over numeric sequences.
"""
import numpy as np
import pandas as pd


def runmean(a, width):
    """
    Centered moving average with the same length as the input.

    Near the edges the window shrinks to the values that are available, so
    the first value averages ``a[0]`` and its right neighbours only.  For an
    even ``width`` the window holds one more value to the left.

    Args:
        a: Sequence of numbers.
        width (int): Window width, at least 1.

    Returns:
        numpy.ndarray of floats with ``len(a)`` values.
    """
    width = int(width)
    if width < 1:
        raise ValueError(f"width must be a positive integer, got {width}")
    values = pd.Series(np.asarray(a, dtype=float))
    return values.rolling(window=width, center=True, min_periods=1).mean().to_numpy()
