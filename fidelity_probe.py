# fidelity_probe.py

"""
Regenerates a baked planet from its stored generation config and checks that
every buffer is bit-identical to what was baked.

Usage:
    python fidelity_probe.py --bake-dir baked_planets/seed_2021
"""

import argparse
import json
import logging
import os
import sys

sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from bake_planet import GENERATION_CONFIG_NAME, MANIFEST_NAME, buffer_digests, build_bodies


def probe_body(logger, name, baked_entry, live_buffers):
    """Compares one body's baked digests against freshly generated buffers."""
    logger.info(f"--- Probing '{name}' ---")
    live_digests = buffer_digests(live_buffers)

    body_passed = True
    for buffer_name, baked_digest in sorted(baked_entry['digests'].items()):
        live_digest = live_digests.get(buffer_name)
        result = "PASS" if live_digest == baked_digest else "FAIL"
        if result == "FAIL":
            body_passed = False
        logger.info(f"  - {buffer_name}: Baked={baked_digest}, Live={live_digest} -> {result}")

    return body_passed


def run_full_probe(bake_dir: str) -> bool:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    logger = logging.getLogger("FidelityProbe")

    # --- 1. Load Baked Manifest ---
    manifest_path = os.path.join(bake_dir, MANIFEST_NAME)
    logger.info(f"Loading manifest from '{manifest_path}'...")
    try:
        with open(manifest_path, 'r') as f:
            manifest = json.load(f)
    except FileNotFoundError:
        logger.critical(f"Manifest not found. Run bake_planet.py first to create '{bake_dir}'.")
        return False

    # --- 2. Load the GENERATION config for a perfect match ---
    gen_config_path = os.path.join(bake_dir, GENERATION_CONFIG_NAME)
    logger.info(f"Loading generation config from '{gen_config_path}'...")
    with open(gen_config_path, 'r') as f:
        generation_config = json.load(f)

    # --- 3. Regenerate and Compare ---
    live_bodies = build_bodies(generation_config, logger, progress=False)

    all_probes_passed = True
    for name, entry in manifest['bodies'].items():
        if name not in live_bodies:
            logger.error(f"Body '{name}' is in the manifest but was not regenerated.")
            all_probes_passed = False
            continue
        if not probe_body(logger, name, entry, live_bodies[name]):
            all_probes_passed = False

    logger.info("--- Full Probe Complete ---")
    if all_probes_passed:
        logger.info("SUCCESS: Regenerated buffers match the bake exactly.")
    else:
        logger.error("FAILURE: Mismatch detected in one or more buffers.")
    return all_probes_passed


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Check a baked planet for reproducibility.")
    parser.add_argument("--bake-dir", type=str, required=True, help="Directory written by bake_planet.py")
    args = parser.parse_args()

    sys.exit(0 if run_full_probe(args.bake_dir) else 1)
