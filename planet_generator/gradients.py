# planet_generator/gradients.py

"""
================================================================================
PERMUTATION & GRADIENT TABLE
================================================================================
This module builds the lookup tables consumed by the 3D gradient noise kernel:
a set of pseudo-random unit gradient vectors and a shuffled index permutation.

Data Contract:
---------------
- Inputs:
    - seed: Integer seed for the random generator.
    - table_size: Number of gradients and permutation entries (power of two).
    - correlated_angles: Reproduce the legacy single-draw gradient sampling.
- Outputs:
    - A GradientTable holding:
        - gradients (np.ndarray): (table_size, 3) float64 unit vectors.
        - permutation (np.ndarray): (2 * table_size,) int64, the shuffled
          indices [0, table_size) repeated twice so that chained lookups
          never need to wrap.
- Side Effects: None.
- Invariants: The same seed, size and sampling mode always produce
  bit-identical tables.
================================================================================
"""

from dataclasses import dataclass

import numpy as np

from . import config as DEFAULTS
from .errors import InvalidConfiguration


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


@dataclass(frozen=True)
class GradientTable:
    """Immutable gradient/permutation pair for one seed."""
    seed: int
    gradients: np.ndarray
    permutation: np.ndarray

    @property
    def size(self) -> int:
        return self.gradients.shape[0]

    @property
    def mask(self) -> int:
        return self.size - 1


def _sample_unit_sphere(rng: np.random.Generator, count: int, correlated_angles: bool) -> np.ndarray:
    """
    Inverse-transform sampling of directions on the unit sphere.
    theta = acos(2u - 1) gives a uniform distribution over the polar angle's
    cosine; phi = 2 * pi * v spreads the azimuth uniformly.
    """
    u = rng.random(count)
    v = u if correlated_angles else rng.random(count)

    theta = np.arccos(2.0 * u - 1.0)
    phi = 2.0 * np.pi * v

    sin_theta = np.sin(theta)
    return np.column_stack((np.cos(phi) * sin_theta, np.sin(phi) * sin_theta, np.cos(theta)))


def generate_gradient_table(seed: int = DEFAULTS.DEFAULT_SEED,
                            table_size: int = DEFAULTS.DEFAULT_TABLE_SIZE,
                            correlated_angles: bool = DEFAULTS.DEFAULT_CORRELATED_ANGLES) -> GradientTable:
    """Generates the gradient vectors and doubled permutation deterministically."""
    if not isinstance(table_size, (int, np.integer)) or not is_power_of_two(int(table_size)):
        raise InvalidConfiguration(f"table_size must be a positive power of two, got {table_size!r}")
    table_size = int(table_size)
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0:
        raise InvalidConfiguration(f"seed must be a non-negative integer, got {seed!r}")

    rng = np.random.default_rng(seed)

    # 1. Gradients are drawn first so the permutation depends on the same stream.
    gradients = _sample_unit_sphere(rng, table_size, correlated_angles)

    # 2. Fisher-Yates shuffle of the identity permutation.
    p = np.arange(table_size, dtype=np.int64)
    rng.shuffle(p)

    # 3. Duplicate so P[P[x] + y] never indexes past the end.
    permutation = np.stack([p, p]).flatten()

    gradients.setflags(write=False)
    permutation.setflags(write=False)
    return GradientTable(seed=seed, gradients=gradients, permutation=permutation)
