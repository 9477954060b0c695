"""Parameter formulas: ``parameter ~ expression`` pairs.

A :class:`Formula` is an ordered collection of :class:`ParameterFormula`
items.  It can be built from strings in the ``"mean ~ 1 + 2 * x1"`` style,
from a ``{"mean": "1 + 2 * x1"}`` mapping, or from ready made
:class:`ParameterFormula` objects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Collection, Iterable, Iterator, List, Mapping, Tuple, Union

from ..errors import FormulaError
from .expression import Expr, free_names, parse_expression


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Coordinates simulated uniformly over the spatial extent.
SPATIAL_PREDICTOR = re.compile(r"^s[0-9]+$")


@dataclass(frozen=True)
class ParameterFormula:
    """One parameter and the expression that defines it."""

    name: str
    expression: Expr
    text: str = ""

    @classmethod
    def parse(cls, text: str) -> "ParameterFormula":
        """Parse ``"name ~ expression"``."""
        lhs, tilde, rhs = text.partition("~")
        name = lhs.strip()
        if not tilde:
            raise FormulaError(f"Formula {text!r} must have the form 'parameter ~ expression'")
        if not _IDENTIFIER.match(name):
            raise FormulaError(f"Invalid parameter name {name!r} in formula {text!r}")
        if not rhs.strip():
            raise FormulaError(f"Formula {text!r} has an empty right-hand side")
        return cls(name=name, expression=parse_expression(rhs), text=text.strip())

    @property
    def variables(self) -> List[str]:
        return free_names(self.expression)


FormulaLike = Union[
    "Formula",
    str,
    ParameterFormula,
    Mapping[str, str],
    Iterable[Union[str, ParameterFormula, Tuple[str, str]]],
]


class Formula:
    """Ordered, duplicate free collection of parameter formulas."""

    def __init__(self, items: Iterable[ParameterFormula]) -> None:
        self.items: List[ParameterFormula] = []
        seen = set()
        for item in items:
            if item.name in seen:
                raise FormulaError(f"Parameter {item.name!r} is defined more than once")
            seen.add(item.name)
            self.items.append(item)
        if not self.items:
            raise FormulaError("A formula needs at least one parameter")

    @classmethod
    def coerce(cls, formula: FormulaLike) -> "Formula":
        """Build a :class:`Formula` from any of the supported spellings."""
        if isinstance(formula, Formula):
            return formula
        if isinstance(formula, (str, ParameterFormula)):
            formula = [formula]
        if isinstance(formula, Mapping):
            return cls(
                ParameterFormula.parse(f"{name} ~ {rhs}") for name, rhs in formula.items()
            )
        items = []
        for entry in formula:
            if isinstance(entry, ParameterFormula):
                items.append(entry)
            elif isinstance(entry, str):
                items.append(ParameterFormula.parse(entry))
            elif isinstance(entry, tuple) and len(entry) == 2:
                items.append(ParameterFormula.parse(f"{entry[0]} ~ {entry[1]}"))
            else:
                raise FormulaError(f"Cannot interpret formula entry {entry!r}")
        return cls(items)

    def __iter__(self) -> Iterator[ParameterFormula]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def params(self) -> List[str]:
        return [item.name for item in self.items]

    def predictors(self, constants: Collection[str] = ()) -> List[str]:
        """Variables of all right-hand sides, in order of first appearance.

        Parameter names and names listed in ``constants`` are excluded.
        """
        params = set(self.params)
        out: List[str] = []
        for item in self.items:
            for name in item.variables:
                if name in params or name in constants or name in out:
                    continue
                out.append(name)
        return out


def partition_predictors(
    predictors: Iterable[str], supplied: Collection[str]
) -> Tuple[List[str], List[str]]:
    """Split predictors that must be simulated into ordinary and spatial ones.

    Predictors present in ``supplied`` are dropped.

    :returns: ``(ordinary, spatial)`` name lists, order preserved.
    """
    to_simulate = [name for name in predictors if name not in supplied]
    spatial = [name for name in to_simulate if SPATIAL_PREDICTOR.match(name)]
    ordinary = [name for name in to_simulate if name not in spatial]
    return ordinary, spatial


__all__ = ["ParameterFormula", "Formula", "SPATIAL_PREDICTOR", "partition_predictors"]
