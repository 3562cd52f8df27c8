#!/usr/bin/env python3
# =============================================================================
# FILE: backresp/main.py
"""
Main CLI Entry Point

Provides command-line interface for:
- Computing responsibility for a single model and counterexample
- Running experiment sweeps from a YAML config
- Validating safety-game solutions and power-index identities
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .exceptions import ResponsibilityError
from .modules.data_gen import DataGenerator, ModelInstance, load_instance
from .modules.responsibility import (
    PowerIndex,
    ResponsibilityConfig,
    ResponsibilityEngine,
    ResponsibilityMode,
)
from .modules.runner import ExperimentRunner, build_manifest
from .modules.safety_game import SafetyGame
from .modules.transition_system import Counterexample
from .utils.logging_utils import ExperimentLogger
from .utils.validation import GameValidator, ResponsibilityValidator


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def load_config(config_path: Path) -> dict:
    """Load experiment configuration"""
    with open(config_path, 'r') as f:
        return yaml.safe_load(f) or {}


def _load_model(args) -> ModelInstance:
    if args.model:
        instance = load_instance(args.model)
    else:
        instance = DataGenerator(seed=args.seed).generate_instance(
            args.example, level=args.level
        )

    if getattr(args, 'trace', None):
        instance.counterexample = Counterexample(
            [s.strip() for s in args.trace.split(',') if s.strip()]
        )
    return instance


def compute_command(args):
    """Compute responsibility for one model"""
    logger = logging.getLogger(__name__)
    instance = _load_model(args)
    logger.info(f"Model {instance.name}: {instance.ts.summary()}, trace {instance.counterexample}")

    engine = ResponsibilityEngine(ResponsibilityConfig(
        mode=args.mode,
        power_index=args.index,
        max_players=args.max_players,
        n_workers=args.workers
    ))
    result = engine.compute(instance.ts, instance.counterexample)

    if args.json:
        payload = result.to_dict()
        if args.json == '-':
            print(json.dumps(payload, indent=2, default=str))
        else:
            with open(args.json, 'w') as f:
                json.dump(payload, f, indent=2, default=str)
            logger.info(f"Result written to {args.json}")
    else:
        print(result.summary())

    return result


def run_experiments(args):
    """Run experiments based on configuration"""
    logger = logging.getLogger(__name__)
    logger.info("Starting experiment run...")

    config = load_config(Path(args.config))
    manifest = build_manifest(config)

    experiment_logger = ExperimentLogger(config=config)
    experiment_logger.log_experiment_start()

    runner = ExperimentRunner(output_dir=args.output, seed=config.get('seed', 42))
    results = runner.run_grid(
        run_manifest=manifest,
        parallel_workers=args.jobs,
        checkpoint_interval=args.checkpoint_interval,
        resume=args.resume
    )
    experiment_logger.log_milestone(f"{len(results)}/{len(manifest)} runs completed")
    experiment_logger.log_results(results)

    experiment_logger.log_experiment_end({
        'runs': len(results),
        'requested': len(manifest),
        'output': str(args.output)
    })
    return results


def validate_model(args):
    """Validate attractor solutions, weight identities and the optimistic closed form"""
    instance = _load_model(args)
    ts, rho = instance.ts, instance.counterexample

    game_validator = GameValidator()
    resp_validator = ResponsibilityValidator()
    checks = {}

    players = [s for s in dict.fromkeys(rho) if s not in ts.bad_states]
    coalitions = [frozenset(), frozenset(players)] + [frozenset([s]) for s in players]
    for coalition in coalitions:
        game = SafetyGame.build(ts, rho, coalition)
        label = "{" + ", ".join(str(s) for s in sorted(coalition, key=str)) + "}"
        checks[f"winning_region {label}"] = game_validator.validate_winning_region(game)

    for index in (PowerIndex.SHAPLEY, PowerIndex.BANZHAF):
        for n in range(1, args.max_n + 1):
            checks[f"weights {index.value} n={n}"] = resp_validator.validate_weight_identity(index, n)

    engine = ResponsibilityEngine(ResponsibilityConfig(aggregate_components=False))
    for index in (PowerIndex.SHAPLEY, PowerIndex.BANZHAF):
        result = engine.compute(ts, rho, power_index=index, mode=ResponsibilityMode.OPTIMISTIC)
        checks[f"closed_form {index.value}"] = resp_validator.validate_optimistic_closed_form(
            ts, rho, result
        )

    n_failed = 0
    print("\n" + "=" * 60)
    for name, outcome in checks.items():
        status = "OK  " if outcome.is_valid else "FAIL"
        print(f"  [{status}] {name}")
        if not outcome.is_valid:
            n_failed += 1
            print(f"         {outcome.error}")
    print("=" * 60)
    print(f"{len(checks) - n_failed}/{len(checks)} checks passed\n")

    return checks


def _add_model_arguments(parser: argparse.ArgumentParser):
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--model', '-m', type=str,
                        help='Path to a YAML/JSON model file')
    source.add_argument('--example', '-e', type=str, default='railway',
                        choices=['railway', 'chain', 'random'],
                        help='Built-in example instance (default: railway)')
    parser.add_argument('--level', type=int, default=0,
                        help='Refinement level for the chain example')
    parser.add_argument('--seed', type=int, default=42,
                        help='Seed for the random example')
    parser.add_argument('--trace', '-t', type=str,
                        help='Comma-separated counterexample overriding the model trace')


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog='backresp',
        description='Backward responsibility in transition systems',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Optimistic Shapley responsibility on the railway example
  python -m backresp.main compute --example railway

  # Pessimistic Banzhaf responsibility for a model file, JSON to stdout
  python -m backresp.main compute --model model.yaml --mode pessimistic --index banzhaf --json -

  # Run an experiment sweep
  python -m backresp.main run --config configs/experiment.yaml --jobs 4

  # Validate a model
  python -m backresp.main validate --model model.yaml
        """
    )

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Also write logs to this file')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    compute_parser = subparsers.add_parser('compute', help='Compute responsibility')
    _add_model_arguments(compute_parser)
    compute_parser.add_argument('--mode', type=str, default='optimistic',
                                choices=[m.value for m in ResponsibilityMode],
                                help='Responsibility semantics')
    compute_parser.add_argument('--index', '-i', type=str, default='shapley',
                                choices=[p.value for p in PowerIndex],
                                help='Power index')
    compute_parser.add_argument('--max-players', type=int, default=20,
                                help='Player ceiling for pessimistic enumeration')
    compute_parser.add_argument('--workers', '-j', type=int, default=1,
                                help='Worker processes for pessimistic enumeration')
    compute_parser.add_argument('--json', type=str, default=None,
                                help="Write JSON result to this path ('-' for stdout)")

    run_parser = subparsers.add_parser('run', help='Run experiments')
    run_parser.add_argument('--config', '-c', type=str,
                            default='configs/experiment.yaml',
                            help='Path to experiment config file')
    run_parser.add_argument('--output', '-o', type=str,
                            default='experiments',
                            help='Output directory')
    run_parser.add_argument('--jobs', '-j', type=int, default=1,
                            help='Number of parallel jobs')
    run_parser.add_argument('--resume', action='store_true',
                            help='Resume from checkpoint')
    run_parser.add_argument('--checkpoint-interval', type=int, default=10,
                            help='Checkpoint interval (runs)')

    validate_parser = subparsers.add_parser('validate', help='Validate a model')
    _add_model_arguments(validate_parser)
    validate_parser.add_argument('--max-n', type=int, default=6,
                                 help='Largest player count for weight identity checks')

    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    try:
        if args.command == 'compute':
            return compute_command(args)
        elif args.command == 'run':
            return run_experiments(args)
        elif args.command == 'validate':
            return validate_model(args)
        else:
            parser.print_help()
            sys.exit(1)
    except (ResponsibilityError, FileNotFoundError) as e:
        logging.getLogger(__name__).error(str(e))
        sys.exit(2)


if __name__ == '__main__':
    main()
