# bake_planet.py

"""
================================================================================
OFFLINE PLANET BAKER SCRIPT
================================================================================
This script is a command-line tool for generating a planet, its water shell
and its sun from a JSON configuration, and saving every vertex buffer to disk
("baking"). A renderer can then load the arrays directly instead of
regenerating the geometry and noise on start-up.

Config layout (every section and key is optional):
    {
      "noise":  {"seed": 2021, "octaves": 8, "lacunarity": 2.0, "H": 0.9,
                 "offset": 0.0, "period": 20.0},
      "planet": {"center": [0, 0, 0], "radius": 50, "recursions": 5,
                 "water_radius_factor": 1.02, "water_recursions": 5},
      "sun":    {"center": [50, -50, 200], "radius": 50, "recursions": 4,
                 "seed": 2021, "frames": 0}
    }

Usage:
    python bake_planet.py --config path/to/your/config.json
================================================================================
"""
import os
import sys
import json
import logging
import argparse
import time
import hashlib
import numpy as np
from tqdm import tqdm

# Add project root to Python path to allow importing from planet_generator
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from planet_generator import Icosphere, NoiseEngine, Planet, Sun
from planet_generator import config as DEFAULTS

MANIFEST_NAME = "manifest.json"
GENERATION_CONFIG_NAME = "generation_config.json"


def buffer_digests(buffers: dict) -> dict:
    """md5 of every array's raw bytes, keyed by buffer name."""
    return {
        name: hashlib.md5(np.ascontiguousarray(array).tobytes()).hexdigest()
        for name, array in sorted(buffers.items())
    }


def save_body(buffers: dict, directory: str, name: str) -> str:
    """Saves one body's buffers as a compressed .npz and returns the file name."""
    os.makedirs(directory, exist_ok=True)
    filename = f"{name}.npz"
    np.savez_compressed(os.path.join(directory, filename), **buffers)
    return filename


def build_bodies(config: dict, logger: logging.Logger, progress: bool = True) -> dict:
    """
    Generates the planet, water shell and sun described by `config`.
    Returns a dict mapping body name to its buffer dict.
    """
    noise_params = {
        'octaves': DEFAULTS.TERRAIN_NOISE_OCTAVES,
        'offset': DEFAULTS.TERRAIN_NOISE_OFFSET,
    }
    noise_params.update(config.get('noise', {}))
    planet_params = config.get('planet', {})
    sun_params = config.get('sun', {})

    bodies = {}
    state = {}

    def make_planet():
        mesh = Icosphere(
            center=planet_params.get('center', DEFAULTS.DEFAULT_PLANET_CENTER),
            radius=planet_params.get('radius', DEFAULTS.DEFAULT_PLANET_RADIUS),
            recursions=planet_params.get('recursions', DEFAULTS.DEFAULT_PLANET_RECURSIONS),
            logger=logger,
        )
        engine = NoiseEngine(config=noise_params, logger=logger)
        state['planet'] = Planet(mesh, noise_engine=engine, config=planet_params, logger=logger)
        return state['planet'].buffers()

    def make_water():
        water = state['planet'].build_water_shell()
        return {
            'positions': water.vertices,
            'normals': water.vertex_normals,
            'uvs': water.uvs,
            'indices': water.triangle_indices,
        }

    def make_sun():
        mesh = Icosphere(
            center=sun_params.get('center', DEFAULTS.DEFAULT_SUN_CENTER),
            radius=sun_params.get('radius', DEFAULTS.DEFAULT_SUN_RADIUS),
            recursions=sun_params.get('recursions', DEFAULTS.DEFAULT_SUN_RECURSIONS),
            logger=logger,
        )
        sun = Sun(mesh, config=sun_params, logger=logger)
        frames = sun_params.get('frames', 0)
        if frames:
            sun.advance(frames)
        return sun.buffers()

    # The water shell reads the planet, so order matters.
    tasks = [("planet", make_planet), ("water", make_water), ("sun", make_sun)]
    for name, task in tqdm(tasks, desc="Baking Bodies", disable=not progress):
        bodies[name] = task()
        logger.debug(f"Built '{name}' with {len(bodies[name]['positions'])} vertices.")

    return bodies


def bake_planet(config_path: str, output_dir: str = None):
    """
    Loads a configuration, generates every body, and saves their buffers
    plus a manifest of buffer digests to an output directory.
    """
    # 1. --- Setup Logging ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    logger = logging.getLogger("Baker")

    # 2. --- Load Configuration ---
    logger.info(f"Loading configuration from: {config_path}")
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.critical(f"Failed to load or parse config file: {e}")
        return None

    seed = config.get('noise', {}).get('seed', DEFAULTS.DEFAULT_SEED)
    base_output_dir = output_dir or f"baked_planets/seed_{seed}"

    # 3. --- Generate ---
    start_time = time.perf_counter()
    bodies = build_bodies(config, logger)

    # 4. --- Save Buffers and Manifest ---
    manifest = {'seed': seed, 'bodies': {}}
    for name, buffers in bodies.items():
        filename = save_body(buffers, base_output_dir, name)
        manifest['bodies'][name] = {
            'file': filename,
            'vertex_count': int(len(buffers['positions'])),
            'face_count': int(len(buffers['indices']) // 3),
            'digests': buffer_digests(buffers),
        }

    with open(os.path.join(base_output_dir, MANIFEST_NAME), 'w') as f:
        json.dump(manifest, f, indent=2)
    # The exact generation config is stored so the bake can be reproduced.
    with open(os.path.join(base_output_dir, GENERATION_CONFIG_NAME), 'w') as f:
        json.dump(config, f, indent=2)

    end_time = time.perf_counter()
    logger.info(f"Baking complete! Total time: {end_time - start_time:.2f} seconds.")
    for name, entry in manifest['bodies'].items():
        logger.info(f"  - {name.capitalize()}: {entry['vertex_count']} vertices, {entry['face_count']} faces")
    logger.info(f"Baked planet and {MANIFEST_NAME} saved to: {base_output_dir}")
    return base_output_dir


# --- Command-Line Interface ---
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Offline Planet Baker for the planet generator.")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the JSON configuration file for the planet to be baked."
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory. Defaults to baked_planets/seed_<seed>."
    )
    args = parser.parse_args()

    bake_planet(args.config, args.output)
