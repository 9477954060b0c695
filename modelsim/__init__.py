"""
modelsim

Utilities for simulating synthetic datasets from user-specified statistical
models, including spatial and multivariate Gaussian processes.
"""

from .config import SimulationConfig, load_config
from .errors import (
    FormulaError,
    InvocationError,
    NumericError,
    ReshapeError,
    ResolutionError,
    SimulationError,
)
from .sim import exp_cor, exp_cov, gp, mfe, mgp, msim_model, sim_model, simulate
from .summarize import db_summarize
from .utils import runmean

__version__ = "0.1.0"

__all__ = [
    'SimulationConfig',
    'load_config',
    'sim_model',
    'msim_model',
    'simulate',
    'gp',
    'mgp',
    'mfe',
    'exp_cor',
    'exp_cov',
    'db_summarize',
    'runmean',
    'SimulationError',
    'FormulaError',
    'ResolutionError',
    'InvocationError',
    'NumericError',
    'ReshapeError',
]
