"""QFragility - command line entry point.

    python main.py serve --port 4000
    python main.py evolve --preset plus --noise-preset t2_like --seconds 3
    python main.py circuit bell.qasm --gate-noise 0.05
    python main.py run bb84 --rounds 2000 --with-eve --seed 7
    python main.py run cavity --g 1.0 --gamma 0.05 --kappa 0.2 --duration 12
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace

import numpy as np

from qfragility.bridge.server import ApiServer, ExperimentCommandHandler
from qfragility.core.config import AppConfig
from qfragility.core.experiment import ExperimentRecord, SeedManager
from qfragility.core.serialization import CircuitSerializer
from qfragility.engine.bloch import NOISE_PRESETS, PRESET_VECTORS, NoiseParams
from qfragility.engine.cavity import CavityParams, cavity_trajectory
from qfragility.engine.experiments import (
    run_bb84, simulate_bell, simulate_ghz, simulate_stern_gerlach,
)
from qfragility.engine.noise import NoiseChannelStepper
from qfragility.engine.parser import CircuitParseError
from qfragility.engine.simulator import GateApplier

logger = logging.getLogger("qfragility")


def _emit(payload, output: str | None):
    text = json.dumps(payload, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Results saved to {output}")
    else:
        print(text)


# ---- Subcommands ------------------------------------------------------------

def cmd_serve(args, config: AppConfig) -> int:
    seed = args.seed if args.seed is not None else config.seed
    handler = ExperimentCommandHandler(SeedManager(seed) if seed is not None else None)
    server = ApiServer(
        handler,
        host=args.host or config.host,
        port=args.port if args.port is not None else config.port,
        allowed_origins=config.allowed_origins,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    return 0


def cmd_evolve(args, config: AppConfig) -> int:
    params = NoiseParams(speed=args.speed)
    if args.noise_preset:
        params = params.with_preset(args.noise_preset)
    overrides = {
        name: getattr(args, name)
        for name in ("depolarizing", "phase_flip", "bit_flip", "amplitude_damping")
        if getattr(args, name) is not None
    }
    if overrides:
        params = replace(params, **overrides)

    stepper = NoiseChannelStepper(dt=config.base_dt)
    n_steps = max(0, round(args.seconds / stepper.dt))
    vector = PRESET_VECTORS[args.preset or config.default_preset]

    def sample(step, v):
        return {
            "t": step * stepper.dt,
            "x": v.x, "y": v.y, "z": v.z,
            "r": v.length,
            "purity": v.purity,
            "coherence": v.coherence,
            "p0": v.p0,
        }

    trajectory = [sample(0, vector)]
    for step, vector in enumerate(stepper.evolve(vector, params, n_steps), start=1):
        if step % args.sample_every == 0 or step == n_steps:
            trajectory.append(sample(step, vector))

    _emit({"noise": params.to_dict(), "dt": stepper.dt, "samples": trajectory}, args.output)
    return 0


def cmd_circuit(args, config: AppConfig) -> int:
    gate_noise = args.gate_noise if args.gate_noise is not None else config.gate_noise
    try:
        circuit = CircuitSerializer.load(args.file)
    except (OSError, CircuitParseError) as e:
        logger.error("Cannot load circuit %s: %s", args.file, e)
        return 1

    applier = GateApplier(gate_noise)
    steps = []
    for idx, vector in applier.run_step_by_step(circuit, tracked_qubit=args.qubit):
        row = {"step": idx, "gate": None, **vector.to_dict(), "r": vector.length}
        if idx >= 0:
            row["gate"] = circuit.gates[idx].to_dict()
        steps.append(row)

    _emit({
        "dialect": circuit.dialect,
        "qubits": circuit.num_qubits,
        "trackedQubit": args.qubit,
        "gateNoise": gate_noise,
        "steps": steps,
    }, args.output)
    return 0


def cmd_run(args, config: AppConfig) -> int:
    seed = args.seed if args.seed is not None else config.seed
    rng = np.random.default_rng(seed)

    if args.experiment == "bell":
        parameters = {"shots": args.shots}
        result = simulate_bell(args.shots, rng)
    elif args.experiment == "ghz":
        parameters = {"shots": args.shots}
        result = simulate_ghz(args.shots, rng)
    elif args.experiment == "bb84":
        parameters = {"rounds": args.rounds, "withEve": args.with_eve}
        result = run_bb84(args.rounds, args.with_eve, rng).to_dict()
    elif args.experiment == "cavity":
        params = CavityParams(g=args.g, gamma=args.gamma, kappa=args.kappa)
        parameters = {**params.to_dict(), "duration": args.duration}
        states = cavity_trajectory(params, args.duration)
        result = {
            "regime": params.regime,
            "final": states[-1].to_dict(),
            "trajectory": [s.to_dict() for s in states[::args.sample_every]],
        }
    else:
        parameters = {"angleDegrees": args.angle}
        result = simulate_stern_gerlach(args.angle, rng=rng).to_dict()

    record = ExperimentRecord.from_result(args.experiment, parameters, result, seed)
    if args.output:
        record.save(args.output)
        print(f"Results saved to {args.output}")
    else:
        print(json.dumps(result, indent=2))
    return 0


# ---- Argument parsing --------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qfragility", description="Single-qubit decoherence playground")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default from config)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve", help="Run the experiment HTTP API")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)
    p.add_argument("--seed", type=int, default=None)
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("evolve", help="Evolve a preset state under noise")
    p.add_argument("--preset", choices=sorted(PRESET_VECTORS), default=None)
    p.add_argument("--noise-preset", choices=sorted(NOISE_PRESETS), default=None)
    p.add_argument("--depolarizing", type=float, default=None)
    p.add_argument("--phase-flip", type=float, default=None)
    p.add_argument("--bit-flip", type=float, default=None)
    p.add_argument("--amplitude-damping", type=float, default=None)
    p.add_argument("--speed", type=float, default=1.0)
    p.add_argument("--seconds", type=float, default=2.0)
    p.add_argument("--sample-every", type=int, default=10)
    p.add_argument("--output", default=None)
    p.set_defaults(func=cmd_evolve)

    p = sub.add_parser("circuit", help="Step a circuit file through the gate applier")
    p.add_argument("file")
    p.add_argument("--gate-noise", type=float, default=None)
    p.add_argument("--qubit", type=int, default=0)
    p.add_argument("--output", default=None)
    p.set_defaults(func=cmd_circuit)

    p = sub.add_parser("run", help="Run one experiment simulator locally")
    p.add_argument("experiment", choices=["bell", "ghz", "bb84", "stern-gerlach", "cavity"])
    p.add_argument("--shots", type=int, default=100)
    p.add_argument("--rounds", type=int, default=50)
    p.add_argument("--with-eve", action="store_true")
    p.add_argument("--angle", type=float, default=0.0)
    p.add_argument("--g", type=float, default=1.0, help="cavity coupling")
    p.add_argument("--gamma", type=float, default=0.05, help="atom decay rate")
    p.add_argument("--kappa", type=float, default=0.05, help="cavity loss rate")
    p.add_argument("--duration", type=float, default=10.0)
    p.add_argument("--sample-every", type=int, default=10)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--output", default=None)
    p.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = AppConfig.load()
    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "sample_every", 1) < 1:
        logger.error("--sample-every must be >= 1")
        return 2
    try:
        return args.func(args, config)
    except ValueError as e:
        logger.error("%s", e)
        return 2


if __name__ == '__main__':
    sys.exit(main())
