"""Spatial Gaussian process generators and the multivariate fixed effect.

All generators draw from an explicit :class:`numpy.random.Generator`; when
used inside a formula the simulation engine injects the generator of the
running call, so a seeded simulation is reproducible end to end.

The multivariate functions share one *block layout*: a flattened vector of
length ``n * q`` where all ``n`` values of process 1 come first, then the
``n`` values of process 2, and so on.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

import numpy as np

from ..errors import NumericError
from .covariance import distance_matrix, mk_sp_cov, resolve_cov_model


logger = logging.getLogger(__name__)


def stochastic(func: Callable) -> Callable:
    """Mark ``func`` as needing the ``rng`` of the running simulation."""
    func.needs_rng = True
    return func


def _cholesky(cov: np.ndarray, what: str) -> np.ndarray:
    try:
        return np.linalg.cholesky(cov)
    except np.linalg.LinAlgError as exc:
        raise NumericError(f"{what} covariance matrix is not positive definite: {exc}") from exc


@stochastic
def gp(
    s1: Sequence[float],
    s2: Sequence[float],
    cov_model: Union[str, Callable] = "exp_cov",
    cov_params: Optional[Mapping[str, Any]] = None,
    rng: Optional[np.random.Generator] = None,
    **params: Any,
) -> np.ndarray:
    """Simulate one realisation of a zero-mean spatial Gaussian process.

    Example::

        s1 = 2 * rng.uniform(size=100)
        s2 = 2 * rng.uniform(size=100)
        y = gp(s1, s2, "exp_cov", {"phi": 0.05, "sigma2": 1.0}, rng=rng)

    :param s1: First coordinate of the ``n`` locations.
    :param s2: Second coordinate of the ``n`` locations.
    :param cov_model: Name of a registered covariance function (see
        :data:`modelsim.sim.covariance.COVARIANCE_MODELS`) or a callable
        ``f(distance, **params)``.
    :param cov_params: Parameters of the covariance function.  Extra keyword
        arguments are merged into it, so ``gp(s1, s2, "exp_cov", phi=0.05,
        sigma2=1)`` also works inside formulas.
    :param rng: Random generator; a fresh unseeded one is used when omitted.
    :returns: Array of length ``n``.
    :raises NumericError: If the covariance matrix is not positive definite.
    """
    if rng is None:
        rng = np.random.default_rng()
    model = resolve_cov_model(cov_model)
    all_params: Dict[str, Any] = dict(cov_params or {})
    all_params.update(params)
    distance = distance_matrix(s1, s2)
    n = distance.shape[0]
    cov = model(distance, **all_params)
    # Lower factor L = R^T of the upper factor R with R^T R = cov.
    lower = _cholesky(cov, "Gaussian process")
    z = rng.standard_normal(n)
    return lower @ z


@stochastic
def mgp(
    s1: Sequence[float],
    s2: Sequence[float],
    cov_model: Union[str, Callable] = "exponential",
    variance: Optional[np.ndarray] = None,
    nugget: Optional[np.ndarray] = None,
    phi: Optional[Sequence[float]] = None,
    kappa: Optional[Sequence[float]] = None,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Simulate a multivariate spatial process (linear model of coregionalization).

    ``Y(s) = A S(s)`` where ``S`` holds ``q`` independent spatial processes
    and ``A A^T = variance``.  ``variance``, ``nugget``, ``phi`` and ``kappa``
    must agree on ``q``; this is not checked.

    :param s1: First coordinate of the ``n`` locations.
    :param s2: Second coordinate of the ``n`` locations.
    :param cov_model: Correlation family understood by
        :func:`~modelsim.sim.covariance.mk_sp_cov` (``exponential``,
        ``gaussian``, ``spherical``, ``matern``) or a callable
        ``f(coords, variance, nugget, theta)`` returning the full
        location-major covariance.
    :param variance: ``q x q`` non-spatial covariance matrix.
    :param nugget: ``q x q`` diagonal nugget; zeros when omitted.
    :param phi: Decay parameter of each latent process.
    :param kappa: Smoothness of each latent process (``matern`` only).
    :param rng: Random generator; a fresh unseeded one is used when omitted.
    :returns: Array of length ``n * q`` in block layout.
    :raises NumericError: If the covariance matrix is not positive definite.
    """
    if rng is None:
        rng = np.random.default_rng()
    if variance is None or phi is None:
        raise TypeError("mgp requires both a variance matrix and decay parameters phi")
    variance = np.atleast_2d(np.asarray(variance, dtype=float))
    q = variance.shape[0]
    if nugget is None:
        nugget = np.zeros((q, q))
    coords = np.column_stack([np.asarray(s1, dtype=float), np.asarray(s2, dtype=float)])
    n = coords.shape[0]

    theta = np.atleast_1d(np.asarray(phi, dtype=float))
    if kappa is not None:
        theta = np.concatenate([theta, np.atleast_1d(np.asarray(kappa, dtype=float))])

    try:
        if callable(cov_model):
            cov = cov_model(coords, variance, nugget, theta)
        else:
            cov = mk_sp_cov(coords, variance, nugget, theta, cov_model)
    except np.linalg.LinAlgError as exc:
        raise NumericError(f"Non-spatial variance matrix is not positive definite: {exc}") from exc
    lower = _cholesky(cov, "Multivariate Gaussian process")
    z = rng.standard_normal(n * q)
    output = lower @ z
    logger.debug("Simulated multivariate Gaussian process with n=%d, q=%d", n, q)
    # Location-major draw -> one contiguous block per process.
    return output.reshape(n, q).ravel(order="F")


def mfe(x: Sequence[float], beta: Sequence[float]) -> np.ndarray:
    """Multivariate fixed effect: ``x`` times each coefficient in ``beta``.

    Returns the ``n x q`` outer product flattened column by column, i.e. in
    the block layout produced by :func:`mgp`.
    """
    x = np.ravel(np.asarray(x, dtype=float))
    beta = np.ravel(np.asarray(beta, dtype=float))
    return np.outer(x, beta).ravel(order="F")


__all__ = ["gp", "mgp", "mfe", "stochastic"]
