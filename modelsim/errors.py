"""Exception types raised by the simulation engines.

Every failure inside a simulation call is fatal for that call; nothing is
retried and no partial table is returned.  The classes below also derive
from the builtin exception a caller would expect for the same situation, so
``except ValueError`` style handlers keep working.
"""

from __future__ import annotations

import numpy as np


class SimulationError(Exception):
    """Base class for all errors raised by :mod:`modelsim`."""


class FormulaError(SimulationError, ValueError):
    """A formula specification could not be parsed."""


class ResolutionError(SimulationError, NameError):
    """An expression references a name that is not defined."""


class InvocationError(SimulationError, TypeError):
    """The response generator rejected the evaluated parameters."""


class NumericError(SimulationError, np.linalg.LinAlgError):
    """A covariance matrix could not be factorised."""


class ReshapeError(SimulationError, ValueError):
    """Evaluated values do not fit the expected table layout."""


__all__ = [
    "SimulationError",
    "FormulaError",
    "ResolutionError",
    "InvocationError",
    "NumericError",
    "ReshapeError",
]
