"""
Synthetic two-feature binary classification problems.

All generators draw features with numpy's Generator API so a fixed
random_state gives identical datasets.
"""

from typing import Optional, Tuple
import numpy as np


def make_linear_boundary(
    n_samples: int = 1000,
    random_state: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Uniform points on [0, 10]², labelled 1 where x1 + x2 > 10.

    Returns:
        X of shape (n_samples, 2) and integer labels of shape (n_samples,).
    """
    rng = np.random.default_rng(random_state)
    X = rng.uniform(0.0, 10.0, size=(n_samples, 2))
    y = (X[:, 0] + X[:, 1] > 10).astype(int)
    return X, y


def make_circular_boundary(
    n_samples: int = 1000,
    random_state: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """Uniform points on [-5, 5]², labelled 1 inside the circle of radius 4."""
    rng = np.random.default_rng(random_state)
    X = rng.uniform(-5.0, 5.0, size=(n_samples, 2))
    y = (X[:, 0] ** 2 + X[:, 1] ** 2 < 16).astype(int)
    return X, y


def make_noisy_boundary(
    n_samples: int = 1000,
    noise: float = 0.1,
    random_state: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """Linear boundary problem with a fraction `noise` of labels flipped."""
    rng = np.random.default_rng(random_state)
    X = rng.uniform(0.0, 10.0, size=(n_samples, 2))
    y = (X[:, 0] + X[:, 1] > 10).astype(int)
    flip = rng.random(n_samples) < noise
    y[flip] = 1 - y[flip]
    return X, y


_GENERATORS = {
    "binary": make_linear_boundary,
    "nonlinear": make_circular_boundary,
    "noisy": make_noisy_boundary,
}


def generate_dataset(
    kind: str = "binary",
    n_samples: int = 1000,
    random_state: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate one of the named datasets: 'binary', 'nonlinear' or 'noisy'.

    Raises:
        ValueError: For an unknown dataset kind.
    """
    if kind not in _GENERATORS:
        raise ValueError(f"Unknown dataset type '{kind}', expected one of {sorted(_GENERATORS)}")
    return _GENERATORS[kind](n_samples=n_samples, random_state=random_state)
