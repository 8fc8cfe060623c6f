# planet_generator/__init__.py

# This file makes the 'planet_generator' directory a Python package.
# We can also use it to define the public API of the package.

from .errors import InvalidConfiguration, DegenerateGeometry
from .gradients import GradientTable, generate_gradient_table
from .noise import NoiseSource, PerlinNoise, FractalNoise, NoiseEngine, compute_exponent_array
from .icosphere import Icosphere, MeshStage, MidpointCache
from .terrain import Planet, compute_height_map, compute_surface_normals
from .sun import Sun

__all__ = [
    "InvalidConfiguration",
    "DegenerateGeometry",
    "GradientTable",
    "generate_gradient_table",
    "NoiseSource",
    "PerlinNoise",
    "FractalNoise",
    "NoiseEngine",
    "compute_exponent_array",
    "Icosphere",
    "MeshStage",
    "MidpointCache",
    "Planet",
    "compute_height_map",
    "compute_surface_normals",
    "Sun",
]

__version__ = "0.1.0"
