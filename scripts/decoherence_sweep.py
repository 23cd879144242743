"""Decoherence sweep -- final length, purity and coherence vs channel strength.

Usage:
    python scripts/decoherence_sweep.py --channel phase_flip --preset plus
    python scripts/decoherence_sweep.py --channel amplitude_damping --preset one --seconds 2 --output t1.json
"""

from __future__ import annotations

import argparse
import json
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import numpy as np

from qfragility.engine.bloch import PRESET_VECTORS, BlochVector, NoiseParams
from qfragility.engine.noise import NoiseChannelStepper

CHANNELS = ("depolarizing", "phase_flip", "bit_flip", "amplitude_damping")


def run_sweep(
    initial: BlochVector,
    channel: str,
    strengths: np.ndarray,
    seconds: float,
    speed: float = 1.0,
) -> list[dict]:
    stepper = NoiseChannelStepper()
    n_steps = max(1, round(seconds / stepper.dt))
    results = []
    for s in strengths:
        params = NoiseParams(speed=speed, **{channel: float(s)})
        final = stepper.run(initial, params, n_steps)
        results.append({
            "strength": float(s),
            "length": final.length,
            "purity": final.purity,
            "coherence": final.coherence,
            "p0": final.p0,
        })
    return results


def main():
    parser = argparse.ArgumentParser(description="Noise channel strength sweep")
    parser.add_argument("--channel", choices=CHANNELS, default="depolarizing")
    parser.add_argument("--preset", choices=sorted(PRESET_VECTORS), default="plus")
    parser.add_argument("--min-s", type=float, default=0.0)
    parser.add_argument("--max-s", type=float, default=1.0)
    parser.add_argument("--steps", type=int, default=11)
    parser.add_argument("--seconds", type=float, default=1.0)
    parser.add_argument("--speed", type=float, default=1.0)
    parser.add_argument("--output", type=str, default=None)
    args = parser.parse_args()

    strengths = np.linspace(args.min_s, args.max_s, args.steps)

    print(f"Running decoherence sweep: channel={args.channel}, preset={args.preset}, "
          f"s=[{args.min_s:.3f}, {args.max_s:.3f}], steps={args.steps}, "
          f"seconds={args.seconds}, speed={args.speed}")

    results = run_sweep(PRESET_VECTORS[args.preset], args.channel, strengths,
                        args.seconds, args.speed)

    output = {
        "experiment": "decoherence_sweep",
        "channel": args.channel,
        "preset": args.preset,
        "seconds": args.seconds,
        "speed": args.speed,
        "results": results,
    }

    if args.output:
        with open(args.output, "w") as f:
            json.dump(output, f, indent=2)
        print(f"Results saved to {args.output}")
    else:
        print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
