"""Covariance functions for spatial Gaussian processes.

Two parametrisations live side by side in this module:

* The univariate functions (:func:`exp_cov`, :func:`matern_cov`, ...) are
  applied elementwise to a distance matrix and use ``phi`` as a *range*:
  distances are divided by ``phi``.  They are the models accepted by
  :func:`modelsim.sim.gp.gp`.
* :func:`spatial_correlation` and :func:`mk_sp_cov` build the block
  covariance of a linear model of coregionalization and use ``phi`` as a
  *decay*: distances are multiplied by ``phi``.  They back
  :func:`modelsim.sim.gp.mgp`.

None of the functions validate their parameters; a non-positive ``phi``
gives a degenerate but well defined matrix.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence, Union

import numpy as np
from scipy.spatial.distance import pdist, squareform
from scipy.special import gamma, kv


logger = logging.getLogger(__name__)

CovarianceFunction = Callable[..., np.ndarray]


def exp_cor(distance: np.ndarray, phi: float) -> np.ndarray:
    """Exponential correlation ``exp(-distance / phi)``."""
    return np.exp(-np.asarray(distance, dtype=float) / phi)


def exp_cov(distance: np.ndarray, phi: float, sigma2: float) -> np.ndarray:
    """Exponential covariance ``sigma2 * exp(-distance / phi)``."""
    return sigma2 * np.exp(-np.asarray(distance, dtype=float) / phi)


def gaussian_cov(distance: np.ndarray, phi: float, sigma2: float) -> np.ndarray:
    """Squared exponential covariance ``sigma2 * exp(-(distance / phi) ** 2)``."""
    scaled = np.asarray(distance, dtype=float) / phi
    return sigma2 * np.exp(-(scaled ** 2))


def spherical_cov(distance: np.ndarray, phi: float, sigma2: float) -> np.ndarray:
    """Spherical covariance with range ``phi``; exactly zero beyond it."""
    scaled = np.asarray(distance, dtype=float) / phi
    cor = np.where(scaled <= 1.0, 1.0 - 1.5 * scaled + 0.5 * scaled ** 3, 0.0)
    return sigma2 * cor


def matern_cov(distance: np.ndarray, phi: float, sigma2: float, kappa: float = 0.5) -> np.ndarray:
    """Matérn covariance with range ``phi`` and smoothness ``kappa``.

    ``kappa = 0.5`` reduces to :func:`exp_cov`.
    """
    return sigma2 * _matern(np.asarray(distance, dtype=float) / phi, kappa)


def _matern(u: np.ndarray, kappa: float) -> np.ndarray:
    """Matérn correlation of the scaled distance ``u`` (1 at ``u == 0``)."""
    u = np.asarray(u, dtype=float)
    out = np.ones_like(u)
    positive = u > 0
    up = u[positive]
    out[positive] = (up ** kappa) * kv(kappa, up) / (2.0 ** (kappa - 1.0) * gamma(kappa))
    return out


COVARIANCE_MODELS: Dict[str, CovarianceFunction] = {
    "exp_cor": exp_cor,
    "exp_cov": exp_cov,
    "gaussian_cov": gaussian_cov,
    "spherical_cov": spherical_cov,
    "matern_cov": matern_cov,
}


def resolve_cov_model(cov_model: Union[str, CovarianceFunction]) -> CovarianceFunction:
    """Return the covariance function registered under ``cov_model``.

    Callables are returned unchanged so callers can plug in their own
    ``f(distance, **params)``.

    :raises ValueError: If ``cov_model`` is an unknown name.
    """
    if callable(cov_model):
        return cov_model
    try:
        return COVARIANCE_MODELS[cov_model]
    except KeyError:
        known = ", ".join(sorted(COVARIANCE_MODELS))
        raise ValueError(f"Unknown covariance model {cov_model!r}; expected one of: {known}") from None


def distance_matrix(s1: Sequence[float], s2: Sequence[float]) -> np.ndarray:
    """Pairwise Euclidean distances between the points ``(s1[i], s2[i])``."""
    coords = np.column_stack([np.asarray(s1, dtype=float), np.asarray(s2, dtype=float)])
    if coords.shape[0] < 2:
        return np.zeros((coords.shape[0], coords.shape[0]))
    return squareform(pdist(coords))


SPATIAL_FAMILIES = ("exponential", "gaussian", "spherical", "matern")


def spatial_correlation(
    distance: np.ndarray, cov_model: str, phi: float, kappa: Optional[float] = None
) -> np.ndarray:
    """Correlation of one latent process, with ``phi`` acting as a decay.

    :param distance: Distance matrix.
    :param cov_model: One of ``exponential``, ``gaussian``, ``spherical`` or
        ``matern``.
    :param phi: Decay parameter.
    :param kappa: Smoothness, required by ``matern`` only.
    :raises ValueError: For an unknown family or a ``matern`` call without
        ``kappa``.
    """
    scaled = phi * np.asarray(distance, dtype=float)
    if cov_model == "exponential":
        return np.exp(-scaled)
    if cov_model == "gaussian":
        return np.exp(-(scaled ** 2))
    if cov_model == "spherical":
        return np.where(scaled <= 1.0, 1.0 - 1.5 * scaled + 0.5 * scaled ** 3, 0.0)
    if cov_model == "matern":
        if kappa is None:
            raise ValueError("The matern correlation requires a kappa parameter")
        return _matern(scaled, kappa)
    raise ValueError(
        f"Unknown spatial correlation family {cov_model!r}; expected one of: {', '.join(SPATIAL_FAMILIES)}"
    )


def mk_sp_cov(
    coords: np.ndarray,
    variance: np.ndarray,
    nugget: np.ndarray,
    theta: Sequence[float],
    cov_model: str,
) -> np.ndarray:
    """Build the covariance matrix of a linear model of coregionalization.

    The ``q`` observed processes are ``Y(s) = A W(s)`` where ``A`` is the
    lower Cholesky factor of ``variance`` and ``W`` holds ``q`` independent
    unit-variance processes, process ``k`` with correlation
    ``spatial_correlation(d, cov_model, phi[k], kappa[k])``.  The nugget is
    added on the diagonal location blocks.

    Rows and columns are ordered location-major: the entry for location ``i``
    and process ``a`` sits at index ``i * q + a``.

    :param coords: ``n x 2`` array of coordinates.
    :param variance: ``q x q`` non-spatial covariance (symmetric PSD).
    :param nugget: ``q x q`` diagonal nugget matrix.
    :param theta: ``phi`` (length ``q``), followed by ``kappa`` (length ``q``)
        for the ``matern`` family.
    :param cov_model: Correlation family name.
    :returns: ``nq x nq`` covariance matrix.
    """
    coords = np.asarray(coords, dtype=float)
    variance = np.atleast_2d(np.asarray(variance, dtype=float))
    nugget = np.atleast_2d(np.asarray(nugget, dtype=float))
    theta = np.atleast_1d(np.asarray(theta, dtype=float))
    n = coords.shape[0]
    q = variance.shape[0]
    phi = theta[:q]
    if cov_model == "matern":
        if theta.size < 2 * q:
            raise ValueError("The matern model needs q decay and q smoothness parameters in theta")
        kappa = theta[q:2 * q]
    else:
        kappa = [None] * q

    distance = distance_matrix(coords[:, 0], coords[:, 1])
    # Factor of the cross-covariance; the PSD precondition is the caller's.
    mixing = np.linalg.cholesky(variance)
    cov = np.zeros((n * q, n * q))
    for k in range(q):
        rho = spatial_correlation(distance, cov_model, phi[k], kappa[k])
        loading = np.outer(mixing[:, k], mixing[:, k])
        cov += np.kron(rho, loading)
    cov += np.kron(np.eye(n), nugget)
    logger.debug("Built %dx%d coregionalization covariance (n=%d, q=%d)", n * q, n * q, n, q)
    return cov


__all__ = [
    "exp_cor",
    "exp_cov",
    "gaussian_cov",
    "spherical_cov",
    "matern_cov",
    "COVARIANCE_MODELS",
    "resolve_cov_model",
    "distance_matrix",
    "spatial_correlation",
    "mk_sp_cov",
]
