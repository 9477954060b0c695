"""
Configuration module for simulation runs.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import numpy as np
import yaml


@dataclass
class SimulationConfig:
    """
    Configuration parameters for one simulation run.

    A YAML file with the same keys can be loaded with :func:`load_config`::

        formula:
          - mean ~ 5 + 0.5 * x1
          - sd ~ exp(0.2 * x1)
        generator: rnorm
        n: 200
        seed: 1
    """
    # Model
    formula: List[str] = field(default_factory=lambda: ["mean ~ 1 + 2 * x1", "sd ~ 1"])
    generator: str = "rnorm"
    multivariate: bool = False
    response: str = "y"

    # Sampling
    n: int = 1000
    seed: Optional[int] = None
    extent: float = 1.0  # Upper bound of simulated coordinates

    # Named values usable inside formulas (matrices for mgp, vectors for mfe)
    constants: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Normalise values read from YAML."""
        if isinstance(self.formula, str):
            self.formula = [self.formula]
        self.n = int(self.n)
        self.extent = float(self.extent)
        self.constants = {
            name: np.asarray(value, dtype=float) if isinstance(value, list) else value
            for name, value in (self.constants or {}).items()
        }


def load_config(path: str) -> SimulationConfig:
    """Read a :class:`SimulationConfig` from a YAML file.

    :raises ValueError: If the file contains keys that are not configuration
        fields.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    known = {f.name for f in fields(SimulationConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")
    return SimulationConfig(**raw)
