"""Expression trees for the right-hand side of parameter formulas.

An expression such as ``5 + 0.5 * x1 + exp(x2)`` is parsed into a small
tree of :class:`Constant`, :class:`Name`, :class:`Vector`, :class:`UnaryOp`,
:class:`BinaryOp` and :class:`Call` nodes.  Python's :mod:`ast` module is
only used as a tokenizer/parser: its node tree is translated into these
classes and nothing is ever compiled or executed.

The tree is evaluated by :func:`evaluate`, which resolves names against the
columns of a data table first and a mapping of constants second, and
function names against a registry (:data:`FUNCTIONS` extended by the
caller).
"""

from __future__ import annotations

import ast
import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy.special import expit

from ..errors import FormulaError, ResolutionError
from .gp import gp, mfe, mgp


@dataclass(frozen=True)
class Constant:
    value: Any


@dataclass(frozen=True)
class Name:
    id: str


@dataclass(frozen=True)
class Vector:
    items: Tuple["Expr", ...]


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Expr"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Call:
    func: str
    args: Tuple["Expr", ...] = ()
    kwargs: Tuple[Tuple[str, "Expr"], ...] = ()


Expr = Union[Constant, Name, Vector, UnaryOp, BinaryOp, Call]


_BINARY_OPS = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.Pow: "**",
    ast.FloorDiv: "//",
    ast.Mod: "%",
}

_UNARY_OPS = {
    ast.UAdd: "+",
    ast.USub: "-",
}

_APPLY_BINARY: Dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "**": operator.pow,
    "//": operator.floordiv,
    "%": operator.mod,
}

_APPLY_UNARY: Dict[str, Callable[[Any], Any]] = {
    "+": operator.pos,
    "-": operator.neg,
}


def parse_expression(text: str) -> Expr:
    """Parse ``text`` into an expression tree.

    :raises FormulaError: On a syntax error or an unsupported construct
        (attribute access, comparisons, ``^``, lambdas, ...).
    """
    try:
        tree = ast.parse(text.strip(), mode="eval")
    except SyntaxError as exc:
        raise FormulaError(f"Invalid expression {text!r}: {exc.msg}") from exc
    return _convert(tree.body, text)


def _convert(node: ast.AST, text: str) -> Expr:
    if isinstance(node, ast.Constant):
        return Constant(node.value)
    if isinstance(node, ast.Name):
        return Name(node.id)
    if isinstance(node, (ast.List, ast.Tuple)):
        return Vector(tuple(_convert(elt, text) for elt in node.elts))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return UnaryOp(_UNARY_OPS[type(node.op)], _convert(node.operand, text))
    if isinstance(node, ast.BinOp):
        if isinstance(node.op, ast.BitXor):
            raise FormulaError(f"Use '**' instead of '^' for powers in {text!r}")
        if type(node.op) in _BINARY_OPS:
            return BinaryOp(
                _BINARY_OPS[type(node.op)], _convert(node.left, text), _convert(node.right, text)
            )
    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name):
            raise FormulaError(f"Only plain function names can be called in {text!r}")
        kwargs = []
        for keyword in node.keywords:
            if keyword.arg is None:
                raise FormulaError(f"Keyword unpacking is not supported in {text!r}")
            kwargs.append((keyword.arg, _convert(keyword.value, text)))
        return Call(
            node.func.id,
            tuple(_convert(arg, text) for arg in node.args),
            tuple(kwargs),
        )
    raise FormulaError(f"Unsupported syntax {type(node).__name__} in {text!r}")


def free_names(expr: Expr) -> List[str]:
    """Variable names referenced by ``expr`` in order of first appearance.

    Function names in call position are not variables and are left out.
    """
    names: List[str] = []

    def visit(node: Expr) -> None:
        if isinstance(node, Name):
            if node.id not in names:
                names.append(node.id)
        elif isinstance(node, Vector):
            for item in node.items:
                visit(item)
        elif isinstance(node, UnaryOp):
            visit(node.operand)
        elif isinstance(node, BinaryOp):
            visit(node.left)
            visit(node.right)
        elif isinstance(node, Call):
            for arg in node.args:
                visit(arg)
            for _, value in node.kwargs:
                visit(value)

    visit(expr)
    return names


def _concat(*values: Any) -> np.ndarray:
    """``c(...)``: concatenate scalars and vectors into one vector."""
    if not values:
        return np.array([], dtype=float)
    return np.concatenate([np.ravel(np.asarray(v)) for v in values])


FUNCTIONS: Dict[str, Callable] = {
    "exp": np.exp,
    "log": np.log,
    "log1p": np.log1p,
    "sqrt": np.sqrt,
    "abs": np.abs,
    "sin": np.sin,
    "cos": np.cos,
    "tanh": np.tanh,
    "logistic": expit,
    "c": _concat,
    "gp": gp,
    "mgp": mgp,
    "mfe": mfe,
}


def evaluate(
    expr: Expr,
    table: Union[pd.DataFrame, Mapping[str, Any]],
    constants: Optional[Mapping[str, Any]] = None,
    functions: Optional[Mapping[str, Callable]] = None,
    rng: Optional[np.random.Generator] = None,
) -> Any:
    """Evaluate ``expr`` against the columns of ``table``.

    :param expr: Parsed expression.
    :param table: Data table; columns are looked up by name and seen as
        numpy arrays.
    :param constants: Extra named values (matrices, vectors, scalars) that
        are not table columns.
    :param functions: Extra callables, taking precedence over
        :data:`FUNCTIONS`.
    :param rng: Random generator handed to functions marked as stochastic
        (:func:`~modelsim.sim.gp.gp`, :func:`~modelsim.sim.gp.mgp`).
    :raises ResolutionError: If a variable or function name is undefined.
    """
    constants = constants or {}
    registry = dict(FUNCTIONS)
    registry.update(functions or {})

    def lookup(name: str) -> Any:
        if name in table:
            column = table[name]
            return column.to_numpy() if isinstance(column, pd.Series) else np.asarray(column)
        if name in constants:
            return constants[name]
        raise ResolutionError(f"Name {name!r} is not a column of the data nor a known constant")

    def visit(node: Expr) -> Any:
        if isinstance(node, Constant):
            return node.value
        if isinstance(node, Name):
            return lookup(node.id)
        if isinstance(node, Vector):
            return np.array([visit(item) for item in node.items])
        if isinstance(node, UnaryOp):
            return _APPLY_UNARY[node.op](visit(node.operand))
        if isinstance(node, BinaryOp):
            return _APPLY_BINARY[node.op](visit(node.left), visit(node.right))
        if isinstance(node, Call):
            func = registry.get(node.func)
            if func is None:
                raise ResolutionError(f"Unknown function {node.func!r}")
            args = [visit(arg) for arg in node.args]
            kwargs = {key: visit(value) for key, value in node.kwargs}
            if getattr(func, "needs_rng", False):
                kwargs.setdefault("rng", rng)
            return func(*args, **kwargs)
        raise TypeError(f"Not an expression node: {node!r}")

    return visit(expr)


__all__ = [
    "Constant",
    "Name",
    "Vector",
    "UnaryOp",
    "BinaryOp",
    "Call",
    "Expr",
    "FUNCTIONS",
    "parse_expression",
    "free_names",
    "evaluate",
]
