#!/usr/bin/env python3
"""
Example usage of modelsim.
Demonstrates univariate, spatial and multivariate simulations.
"""

import numpy as np

from modelsim import gp, mfe, mgp, msim_model, sim_model


def example_linear_model():
    """Normal response with a heteroscedastic standard deviation."""
    print("\n" + "="*60)
    print("Example 1: Linear model")
    print("="*60)

    f = [
        "mean ~ 5 + 0.5 * x1 + 0.1 * x2 + 0.7 * id1",
        "sd ~ exp(x1)",
    ]
    data = sim_model(f, "rnorm", n=100, seed=1)
    print(data.head())


def example_gaussian_process():
    """One realisation of a spatial Gaussian process."""
    print("\n" + "="*60)
    print("Example 2: Gaussian process")
    print("="*60)

    rng = np.random.default_rng(1)
    N = 1000
    s1 = 2 * rng.uniform(size=N)
    s2 = 2 * rng.uniform(size=N)
    y = gp(s1, s2, "exp_cov", {"phi": 0.05, "sigma2": 1.0}, rng=rng)
    print(f"Simulated {len(y)} values, sample variance {y.var():.3f}")


def example_multivariate_process():
    """Two correlated spatial processes."""
    print("\n" + "="*60)
    print("Example 3: Multivariate Gaussian process")
    print("="*60)

    rng = np.random.default_rng(1)
    N = 100
    s1 = 2 * rng.uniform(size=N)
    s2 = 2 * rng.uniform(size=N)

    q = 2
    var = np.sqrt(np.diag([4.0, 4.0]))
    A = np.array([[1.0, 0.0], [-0.8, 0.6]])
    variance = var @ A @ A.T @ var
    nugget = np.zeros((q, q))
    phi = np.repeat(1 / 0.08, q)

    y = mgp(s1, s2, "exponential", variance, nugget, phi, rng=rng)
    y1, y2 = y[:N], y[N:]
    print(f"Correlation between the processes: {np.corrcoef(y1, y2)[0, 1]:.3f}")
    print(f"Fixed effect for 3 responses: {mfe(np.ones(2), [0.1, 0, 1])}")


def example_multivariate_model():
    """Multivariate spatial model with one response column per process."""
    print("\n" + "="*60)
    print("Example 4: Multivariate model")
    print("="*60)

    q = 2
    var = np.sqrt(np.diag([4.0, 4.0]))
    A = np.array([[1.0, 0.0], [-0.8, 0.6]])
    constants = {
        "variance": var @ A @ A.T @ var,
        "nugget": np.zeros((q, q)),
        "phi": np.repeat(1 / 0.08, q),
    }
    f = [
        "mean ~ logistic(mgp(s1, s2, 'exponential', variance, nugget, phi))",
        "sd ~ 1",
    ]
    data = msim_model(f, "rnorm", n=100, extent=2, seed=1, constants=constants)
    print(data.head())


def main():
    """Run all examples."""
    example_linear_model()
    example_gaussian_process()
    example_multivariate_process()
    example_multivariate_model()


if __name__ == "__main__":
    main()
