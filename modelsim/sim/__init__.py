"""Simulation utilities package.

This package contains the formula driven simulation engines together with
the spatial Gaussian process generators they rely on.  Importing from this
package makes available the high-level :func:`sim_model` and
:func:`msim_model` functions.
"""

from .covariance import exp_cor, exp_cov
from .generator import msim_model, sim_model, simulate  # re-export for convenience
from .gp import gp, mfe, mgp

__all__ = ["sim_model", "msim_model", "simulate", "gp", "mgp", "mfe", "exp_cor", "exp_cov"]
