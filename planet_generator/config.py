# planet_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the planet
generator. These values are used if they are not explicitly provided by the
user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC PLANET.
Instead, pass a configuration dictionary to the NoiseEngine, Planet or Sun
instance.
================================================================================
"""

# --- Noise Generation ---
DEFAULT_SEED = 2021

# Number of gradient vectors and permutation entries. Must be a power of two
# because lattice coordinates are wrapped with a bit mask.
DEFAULT_TABLE_SIZE = 512

# fBm parameters
DEFAULT_H = 0.9           # Fractal increment, controls amplitude falloff per octave
DEFAULT_LACUNARITY = 2.0  # Frequency multiplier between octaves
DEFAULT_OFFSET = 0.1      # Added to every hybrid multifractal signal
DEFAULT_OCTAVES = 5

# When True, both spherical angles of a gradient come from one uniform draw.
# This reproduces legacy tables; new tables use independent draws.
DEFAULT_CORRELATED_ANGLES = False

# --- Plane Sampling ---
# Used when sampling a flat noise field (e.g. a preview or a texture source).
DEFAULT_PLANE_WIDTH = 2048
DEFAULT_PLANE_HEIGHT = 2048
DEFAULT_PLANE_PERIOD = 512.0
NOISE_MODE_FBM = "fbm"
NOISE_MODE_HYBRID = "hybrid"

# --- Terrain Shaping ---
# World units per noise lattice cell. A larger number means larger continents.
DEFAULT_TERRAIN_PERIOD = 20.0

# Terrain noise uses its own octave count, independent of DEFAULT_OCTAVES.
TERRAIN_NOISE_OCTAVES = 8
TERRAIN_NOISE_OFFSET = 0.0

# Above this fBm value, the hybrid multifractal "continent" layer is blended in.
CONTINENT_THRESHOLD = -0.1
CONTINENT_WEIGHT = 0.2

# Above this value, heights receive an extra boost to exaggerate mountain ridges.
RIDGE_THRESHOLD = 0.4
RIDGE_BOOST = 0.3

# Heights are scaled by radius ** RELIEF_EXPONENT so relief tracks planet size.
RELIEF_EXPONENT = 0.5

# --- Planet Geometry ---
DEFAULT_PLANET_CENTER = (0.0, 0.0, 0.0)
DEFAULT_PLANET_RADIUS = 50.0
DEFAULT_PLANET_RECURSIONS = 5

# The sea surface is a slightly larger sphere around the planet.
WATER_RADIUS_FACTOR = 1.02
WATER_RECURSIONS = 5

# --- Sun ---
DEFAULT_SUN_CENTER = (50.0, -50.0, 200.0)
DEFAULT_SUN_RADIUS = 50.0
DEFAULT_SUN_RECURSIONS = 4
SUN_NOISE_OCTAVES = 8
SUN_NOISE_OFFSET = 0.0
# How far the noise domain drifts on every call to Sun.advance().
SUN_TIME_STEP = 0.1

# --- Floating Point Tolerances ---
# Accumulated normals shorter than this are treated as zero.
NORMAL_EPSILON = 1e-12
