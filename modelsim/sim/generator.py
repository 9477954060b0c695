"""Formula driven simulation of synthetic datasets.

This module implements the two simulation engines of the package.  A model
is described by a list of parameter formulas in the style of
``bamlss.formula``, where coefficients and link functions are written out
explicitly::

    formula = [
        "mean ~ 5 + 0.5 * x1 + 0.1 * x2",
        "sd ~ exp(x1)",
    ]
    data = sim_model(formula, "rnorm", n=100, seed=1)

Predictors that are not supplied through ``init_data`` are simulated:
names such as ``s1`` or ``s2`` are spatial coordinates drawn uniformly over
``[0, extent]``, every other name is drawn from a standard normal.  Each
parameter is then evaluated against the table and the response is drawn
from ``generator`` with the evaluated parameters as keyword arguments.

:func:`msim_model` does the same for a vector valued response whose
parameters come in block layout (see :mod:`modelsim.sim.gp`) and returns
one column per response variable.

Both engines are deterministic when given a ``seed`` or a seeded
:class:`numpy.random.Generator`; the seed builds a fresh generator so a
seeded call never depends on earlier calls.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

import numpy as np
import pandas as pd

from ..config import SimulationConfig, load_config
from ..errors import InvocationError, ReshapeError
from .expression import evaluate
from .formula import Formula, FormulaLike, partition_predictors


logger = logging.getLogger(__name__)

ResponseGenerator = Callable[..., np.ndarray]


def rnorm(n: int, mean: Any = 0.0, sd: Any = 1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Normal draws with (possibly vectorised) ``mean`` and ``sd``."""
    if rng is None:
        rng = np.random.default_rng()
    return rng.normal(loc=mean, scale=sd, size=n)


def rpois(n: int, rate: Any, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Poisson draws with mean ``rate``."""
    if rng is None:
        rng = np.random.default_rng()
    return rng.poisson(lam=rate, size=n)


def rbinom(n: int, size: Any, prob: Any, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Binomial draws with ``size`` trials and success probability ``prob``.

    ``size`` is rounded to whole trials, since evaluated parameters are floats.
    """
    if rng is None:
        rng = np.random.default_rng()
    trials = np.rint(np.asarray(size, dtype=float)).astype(np.int64)
    return rng.binomial(n=trials, p=prob, size=n)


def rgamma(n: int, shape: Any, rate: Any = 1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Gamma draws parametrised by ``shape`` and ``rate``."""
    if rng is None:
        rng = np.random.default_rng()
    return rng.gamma(shape=shape, scale=1.0 / np.asarray(rate, dtype=float), size=n)


def runif(n: int, min: Any = 0.0, max: Any = 1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Uniform draws on ``[min, max)``."""
    if rng is None:
        rng = np.random.default_rng()
    return rng.uniform(low=min, high=max, size=n)


def rexp(n: int, rate: Any = 1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Exponential draws with the given ``rate``."""
    if rng is None:
        rng = np.random.default_rng()
    return rng.exponential(scale=1.0 / np.asarray(rate, dtype=float), size=n)


def rlnorm(
    n: int, meanlog: Any = 0.0, sdlog: Any = 1.0, rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """Log-normal draws; ``meanlog`` and ``sdlog`` are on the log scale."""
    if rng is None:
        rng = np.random.default_rng()
    return rng.lognormal(mean=meanlog, sigma=sdlog, size=n)


GENERATORS: Dict[str, ResponseGenerator] = {
    "rnorm": rnorm,
    "rpois": rpois,
    "rbinom": rbinom,
    "rgamma": rgamma,
    "runif": runif,
    "rexp": rexp,
    "rlnorm": rlnorm,
}


def resolve_generator(generator: Union[str, ResponseGenerator]) -> ResponseGenerator:
    """Look up a built-in response generator by name; callables pass through."""
    if callable(generator):
        return generator
    try:
        return GENERATORS[generator]
    except KeyError:
        known = ", ".join(sorted(GENERATORS))
        raise ValueError(f"Unknown response generator {generator!r}; expected one of: {known}") from None


def draw_response(
    generator: ResponseGenerator, n: int, params: Mapping[str, Any], rng: np.random.Generator
) -> np.ndarray:
    """Call ``generator(n, **params)``, passing ``rng`` when it accepts one.

    :raises InvocationError: If the parameter names do not match the
        generator signature.
    """
    kwargs = dict(params)
    try:
        signature = inspect.signature(generator)
    except (TypeError, ValueError):
        signature = None
    if signature is not None:
        accepts_rng = "rng" in signature.parameters or any(
            p.kind is inspect.Parameter.VAR_KEYWORD for p in signature.parameters.values()
        )
        if accepts_rng:
            kwargs["rng"] = rng
        try:
            signature.bind(n, **kwargs)
        except TypeError as exc:
            raise InvocationError(
                f"Response generator {getattr(generator, '__name__', generator)!r} cannot be called "
                f"with parameters {sorted(params)}: {exc}"
            ) from exc
        return np.asarray(generator(n, **kwargs))
    # No signature to check against; argument errors surface from the call.
    try:
        return np.asarray(generator(n, **kwargs))
    except TypeError as exc:
        raise InvocationError(
            f"Response generator {getattr(generator, '__name__', generator)!r} cannot be called "
            f"with parameters {sorted(params)}: {exc}"
        ) from exc


def _make_rng(seed: Optional[int], rng: Optional[np.random.Generator]) -> np.random.Generator:
    if seed is not None:
        return np.random.default_rng(seed)
    if rng is not None:
        return rng
    return np.random.default_rng()


def simulate_predictors(
    formula: Formula,
    n: int,
    init_data: Optional[pd.DataFrame],
    rng: np.random.Generator,
    extent: float = 1.0,
    constants: Optional[Mapping[str, Any]] = None,
) -> pd.DataFrame:
    """Return ``init_data`` extended with every predictor it is missing.

    Ordinary predictors are i.i.d. standard normal, spatial coordinates
    (``s1``, ``s2``, ...) i.i.d. uniform on ``[0, extent]``.  The
    ``n x p`` matrices are filled column by column, so the first ``n``
    draws belong to the first predictor.
    """
    if init_data is None:
        data = pd.DataFrame(index=pd.RangeIndex(n))
    else:
        if len(init_data) != n:
            raise ValueError(f"init_data has {len(init_data)} rows but n={n}")
        data = init_data.copy()

    predictors = formula.predictors(constants or {})
    ordinary, spatial = partition_predictors(predictors, set(data.columns))
    logger.debug(
        "Predictors: %d supplied, %d simulated, %d spatial",
        len(predictors) - len(ordinary) - len(spatial),
        len(ordinary),
        len(spatial),
    )
    if ordinary:
        draws = rng.standard_normal(n * len(ordinary)).reshape(len(ordinary), n).T
        data = pd.concat([data, pd.DataFrame(draws, columns=ordinary, index=data.index)], axis=1)
    if spatial:
        draws = rng.uniform(size=n * len(spatial)).reshape(len(spatial), n).T * extent
        data = pd.concat([data, pd.DataFrame(draws, columns=spatial, index=data.index)], axis=1)
    return data


def evaluate_parameters(
    formula: Formula,
    data: pd.DataFrame,
    rng: np.random.Generator,
    constants: Optional[Mapping[str, Any]] = None,
    functions: Optional[Mapping[str, Callable]] = None,
) -> Dict[str, np.ndarray]:
    """Evaluate every parameter against the same ``data`` table."""
    values: Dict[str, np.ndarray] = {}
    for item in formula:
        value = evaluate(item.expression, data, constants=constants, functions=functions, rng=rng)
        values[item.name] = np.atleast_1d(np.asarray(value, dtype=float))
    return values


def _broadcast(name: str, value: np.ndarray, length: int, block: int) -> np.ndarray:
    """Stretch a scalar, or a length ``block`` vector, to ``length``."""
    if value.size == length:
        return value.ravel()
    if value.size == 1:
        return np.repeat(value.ravel(), length)
    if value.size == block and length % block == 0:
        return np.tile(value.ravel(), length // block)
    raise ReshapeError(f"Parameter {name!r} evaluated to {value.size} values, expected {length}")


def sim_model(
    formula: FormulaLike = ("mean ~ 1 + 2 * x1", "sd ~ 1"),
    generator: Union[str, ResponseGenerator] = "rnorm",
    n: int = 1000,
    init_data: Optional[pd.DataFrame] = None,
    seed: Optional[int] = None,
    extent: float = 1.0,
    rng: Optional[np.random.Generator] = None,
    constants: Optional[Mapping[str, Any]] = None,
    functions: Optional[Mapping[str, Callable]] = None,
    response: str = "y",
) -> pd.DataFrame:
    """Simulate a dataset from a univariate model.

    :param formula: Parameter formulas, e.g. ``["mean ~ 1 + 2 * x1", "sd ~ 1"]``.
    :param generator: Response generator (name of a built-in such as
        ``"rnorm"`` or a callable ``f(n, **params)``).
    :param n: Number of observations.
    :param init_data: Table with predictors that must not be simulated.
        It is copied, never modified.
    :param seed: Seed of a fresh random generator for this call.
    :param extent: Upper bound of simulated spatial coordinates.
    :param rng: Generator to draw from when no ``seed`` is given.
    :param constants: Named values usable in the formulas besides the table
        columns, e.g. matrices passed to ``mgp``.
    :param functions: Extra functions usable in the formulas.
    :param response: Name of the response column.
    :returns: Table with the predictors, the evaluated parameters and the
        response, ``n`` rows.
    :raises ResolutionError: If a formula references an undefined name.
    :raises InvocationError: If the generator rejects the parameters.
    :raises ReshapeError: If a parameter or the response does not have
        ``n`` values.
    """
    rng = _make_rng(seed, rng)
    formula = Formula.coerce(formula)
    gen = resolve_generator(generator)

    data = simulate_predictors(formula, n, init_data, rng, extent=extent, constants=constants)
    values = evaluate_parameters(formula, data, rng, constants=constants, functions=functions)
    params = {name: _broadcast(name, value, n, n) for name, value in values.items()}
    for name, value in params.items():
        data[name] = value

    y = draw_response(gen, n, params, rng)
    if y.size != n:
        raise ReshapeError(f"Response generator returned {y.size} values, expected {n}")
    data[response] = y.ravel()
    logger.info("Simulated %d observations with parameters %s", n, ", ".join(params))
    return data


def _join_on_id(data: pd.DataFrame, wide: pd.DataFrame) -> pd.DataFrame:
    """Left join ``wide`` onto ``data`` by ``id``, insisting on a bijection."""
    left_ids = data["id"]
    right_ids = wide["id"]
    if left_ids.duplicated().any() or right_ids.duplicated().any():
        raise ReshapeError("Row identifiers are not unique; cannot join the reshaped response")
    if set(left_ids) != set(right_ids):
        raise ReshapeError("Row identifiers of the reshaped response do not match the observations")
    overlap = [c for c in wide.columns if c != "id" and c in data.columns]
    if overlap:
        data = data.drop(columns=overlap)
    return data.merge(wide, on="id", how="left", validate="one_to_one")


def msim_model(
    formula: FormulaLike,
    generator: Union[str, ResponseGenerator] = "rnorm",
    n: int = 100,
    init_data: Optional[pd.DataFrame] = None,
    seed: Optional[int] = None,
    extent: float = 1.0,
    rng: Optional[np.random.Generator] = None,
    constants: Optional[Mapping[str, Any]] = None,
    functions: Optional[Mapping[str, Callable]] = None,
    response: str = "y",
) -> pd.DataFrame:
    """Simulate a dataset from a multivariate model.

    The number of response variables ``q`` is inferred from the longest
    evaluated parameter, which must hold ``n * q`` values in block layout
    (typically built with ``mgp`` or ``mfe``).  Scalar parameters and
    parameters of length ``n`` are shared by all response variables.

    ``q`` is normally greater than one.  A model whose parameters all have
    ``n`` values is still accepted as ``q == 1``, with a logged warning, and
    produces the single suffixed columns ``<name>1``; it is the same model
    :func:`sim_model` simulates.

    Example::

        constants = {
            "variance": np.array([[16.0, -12.8], [-12.8, 16.0]]),
            "nugget": np.zeros((2, 2)),
            "phi": np.array([12.5, 12.5]),
        }
        formula = [
            "mean ~ logistic(mgp(s1, s2, 'exponential', variance, nugget, phi))",
            "sd ~ 1",
        ]
        data = msim_model(formula, "rnorm", n=100, extent=2, seed=1, constants=constants)

    The result holds the predictors, an ``id`` column ``1..n`` and, for each
    parameter and the response, the columns ``<name>1`` ... ``<name>q``.
    Arguments are as in :func:`sim_model`.

    :raises ReshapeError: If parameter lengths are not compatible with ``n``
        or the reshaped response does not join one to one.
    """
    rng = _make_rng(seed, rng)
    formula = Formula.coerce(formula)
    gen = resolve_generator(generator)

    data = simulate_predictors(formula, n, init_data, rng, extent=extent, constants=constants)
    data["id"] = np.arange(1, n + 1)

    values = evaluate_parameters(formula, data, rng, constants=constants, functions=functions)
    nq = max(value.size for value in values.values())
    if n <= 0 or nq % n != 0:
        raise ReshapeError(f"Parameters have {nq} values, which is not a multiple of n={n}")
    q = nq // n
    if q == 1:
        logger.warning("msim_model inferred a single response variable; sim_model gives the same model")
    params = {name: _broadcast(name, value, nq, n) for name, value in values.items()}

    flat = draw_response(gen, nq, params, rng)
    if flat.size != nq:
        raise ReshapeError(f"Response generator returned {flat.size} values, expected {nq}")

    # Block layout: value for observation i of process j sits at j * n + i.
    wide = pd.DataFrame({"id": np.arange(1, n + 1)})
    for name, value in list(params.items()) + [(response, flat)]:
        blocks = value.reshape(q, n)
        for j in range(q):
            wide[f"{name}{j + 1}"] = blocks[j]

    result = _join_on_id(data, wide)
    logger.info("Simulated %d observations of %d response variables", n, q)
    return result


def simulate(
    cfg_path: str, out_path: Optional[str] = None, seed: Optional[int] = None
) -> pd.DataFrame:
    """Run a simulation described by a YAML configuration file.

    :param cfg_path: Path to the YAML file (see :class:`SimulationConfig`).
    :param out_path: Optional CSV file to write the table to.
    :param seed: Overrides the seed of the configuration.
    :returns: The simulated table.
    """
    cfg: SimulationConfig = load_config(cfg_path)
    engine = msim_model if cfg.multivariate else sim_model
    data = engine(
        cfg.formula,
        generator=cfg.generator,
        n=cfg.n,
        seed=cfg.seed if seed is None else seed,
        extent=cfg.extent,
        constants=cfg.constants,
        response=cfg.response,
    )
    if out_path:
        data.to_csv(out_path, index=False)
        logger.info("Wrote %d rows to %s", len(data), out_path)
    return data


__all__ = [
    "GENERATORS",
    "rnorm",
    "rpois",
    "rbinom",
    "rgamma",
    "runif",
    "rexp",
    "rlnorm",
    "resolve_generator",
    "draw_response",
    "simulate_predictors",
    "evaluate_parameters",
    "sim_model",
    "msim_model",
    "simulate",
]
