# =============================================================================
# FILE: backresp/modules/runner.py
"""
Experiment Runner - Sweeps responsibility computations over instances and configs

Features:
- Incremental checkpointing (resume capability)
- Parallel execution with ProcessPoolExecutor
- Progress tracking with tqdm
- Results saved as CSV and JSON, plus per-configuration means in summary.csv
"""
import numpy as np
import pandas as pd
from typing import Any, Dict, Iterator, List, Optional, Set
from pathlib import Path
import json
import pickle
import logging
from datetime import datetime
from concurrent.futures import ProcessPoolExecutor, as_completed
from tqdm import tqdm

from .data_gen import DataGenerator
from .responsibility import ResponsibilityConfig, ResponsibilityEngine

logger = logging.getLogger(__name__)


class ExperimentRunner:
    """
    Executes a manifest of responsibility runs

    Each run config names an instance source (railway, chain, random, file)
    plus its parameters, and the semantics/power index to apply.
    """

    def __init__(self, output_dir: str, seed: Optional[int] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.seed = seed
        self.results = []

    def run_single_iteration(
        self,
        run_config: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Execute a single responsibility computation

        Parameters from run_config:
        - run_idx, source, mode, power_index
        - seed (optional), level / n_states / edge_prob / n_bad / path (source-specific)
        - max_players (optional)
        """
        generator = DataGenerator(seed=run_config.get('seed', self.seed))
        instance = generator.generate_instance(
            run_config['source'],
            **{k: run_config[k] for k in ('level', 'n_states', 'edge_prob', 'n_bad', 'path')
               if k in run_config}
        )

        engine = ResponsibilityEngine(ResponsibilityConfig(
            mode=run_config['mode'],
            power_index=run_config['power_index'],
            max_players=run_config.get('max_players', 20)
        ))
        result = engine.compute(instance.ts, instance.counterexample)

        values = np.array(list(result.state_responsibility.values()), dtype=float)
        top = result.ranking()[0][0] if result.state_responsibility else None

        return {
            # Config
            'run_idx': run_config['run_idx'],
            'seed': run_config.get('seed', self.seed),
            'instance': instance.name,
            'source': run_config['source'],
            'level': run_config.get('level'),
            'mode': result.mode.value,
            'power_index': result.power_index.value,

            # Instance characteristics
            'n_states': len(instance.ts.states),
            'n_transitions': instance.ts.transition_count,
            'trace_length': len(instance.counterexample),
            'n_players': len(values),

            # Responsibility
            'responsibility_sum': float(values.sum()) if len(values) else 0.0,
            'responsibility_max': float(values.max()) if len(values) else 0.0,
            'most_responsible': None if top is None else str(top),
            'n_winning_alone': sum(
                1 for info in result.state_metadata.values() if info.can_win_alone
            ),
            'normalization_k': result.normalization_k,
            'n_games_solved': result.n_games_solved,
            'state_responsibility': json.dumps(
                {str(k): v for k, v in result.state_responsibility.items()}
            ),
            'computation_time': result.computation_time,

            # Timestamp
            'timestamp': datetime.now().isoformat()
        }

    def run_grid(
        self,
        run_manifest: List[Dict[str, Any]],
        parallel_workers: int = 1,
        checkpoint_interval: int = 100,
        resume: bool = True
    ) -> pd.DataFrame:
        """
        Execute the full manifest with optional parallelization and checkpointing

        Parameters:
        -----------
        run_manifest : list of dict
            One configuration per run, each with a unique 'run_idx'
        parallel_workers : int
            Number of worker processes (1 for serial execution)
        checkpoint_interval : int
            Checkpoint after every N completed runs
        resume : bool
            Skip runs already recorded in an existing checkpoint

        Returns:
        --------
        results : pd.DataFrame
            One row per completed run, ordered by run_idx. Failed runs are
            logged and left out, so a later resume retries them.
        """
        completed = self._restore(resume)
        pending = [run for run in run_manifest if run['run_idx'] not in completed]

        if pending:
            logger.info(
                f"{len(pending)} of {len(run_manifest)} runs pending "
                f"({len(completed)} restored), {parallel_workers} worker(s)"
            )
            since_checkpoint = 0
            for row in tqdm(self._execute(pending, parallel_workers),
                            total=len(pending), desc="Responsibility runs"):
                if row is None:
                    continue
                self.results.append(row)
                completed.add(row['run_idx'])
                since_checkpoint += 1
                if since_checkpoint >= checkpoint_interval:
                    self._checkpoint(completed)
                    since_checkpoint = 0
            self._checkpoint(completed)
        else:
            logger.info("✅ Every run in the manifest is already completed")

        results = pd.DataFrame(self.results)
        if not results.empty:
            results = results.sort_values('run_idx').reset_index(drop=True)
        self._write_outputs(results)
        return results

    def _execute(self, runs: List[Dict[str, Any]], parallel_workers: int) -> Iterator[Optional[Dict]]:
        """Yield one result row per run (None for a failed run), in completion order"""
        if parallel_workers <= 1:
            for run in runs:
                yield self._guarded(run['run_idx'], lambda: self.run_single_iteration(run))
            return

        with ProcessPoolExecutor(max_workers=parallel_workers) as executor:
            futures = {executor.submit(self.run_single_iteration, run): run['run_idx']
                       for run in runs}
            for future in as_completed(futures):
                yield self._guarded(futures[future], future.result)

    @staticmethod
    def _guarded(run_idx: int, produce) -> Optional[Dict]:
        try:
            return produce()
        except Exception as e:
            logger.error(f"⚠️ Run {run_idx} failed: {e}", exc_info=True)
            return None

    @property
    def checkpoint_path(self) -> Path:
        return self.output_dir / 'checkpoint.pkl'

    def _restore(self, resume: bool) -> Set[int]:
        """Reload results of a previous sweep, returning the completed run indices"""
        self.results = []
        if not (resume and self.checkpoint_path.exists()):
            return set()

        with open(self.checkpoint_path, 'rb') as f:
            state = pickle.load(f)
        self.results = list(state['results'])
        logger.info(f"Restored {len(self.results)} runs from {self.checkpoint_path}")
        return {row['run_idx'] for row in self.results}

    def _checkpoint(self, completed: Set[int]):
        with open(self.checkpoint_path, 'wb') as f:
            pickle.dump({
                'completed_indices': sorted(completed),
                'results': self.results,
                'timestamp': datetime.now().isoformat()
            }, f)
        logger.debug(f"Checkpoint: {len(completed)} runs")

    def _write_outputs(self, results: pd.DataFrame):
        """results.csv / results.json with every row, summary.csv with per-config means"""
        results.to_csv(self.output_dir / 'results.csv', index=False)
        results.to_json(self.output_dir / 'results.json', orient='records', indent=2)

        if not results.empty:
            summary = results.groupby(['source', 'mode', 'power_index']).agg(
                runs=('run_idx', 'count'),
                mean_players=('n_players', 'mean'),
                mean_responsibility_max=('responsibility_max', 'mean'),
                mean_games_solved=('n_games_solved', 'mean'),
                mean_time=('computation_time', 'mean'),
            )
            summary.to_csv(self.output_dir / 'summary.csv')

        logger.info(f"Results for {len(results)} runs written to {self.output_dir}")


def build_manifest(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Expand an experiment config into a run manifest

    Expected config layout:
        seed: 42
        instances:
          - {source: railway}
          - {source: chain, levels: [0, 1, 2]}
          - {source: random, n_states: 6, repeats: 3}
        modes: [optimistic, pessimistic]
        power_indices: [shapley, banzhaf]
    """
    base_seed = config.get('seed', 42)
    modes = config.get('modes', ['optimistic'])
    indices = config.get('power_indices', ['shapley'])
    max_players = config.get('max_players', 20)

    instance_specs = []
    for entry in config.get('instances', [{'source': 'railway'}]):
        entry = dict(entry)
        levels = entry.pop('levels', None)
        repeats = entry.pop('repeats', 1)
        if levels is not None:
            for level in levels:
                instance_specs.append({**entry, 'level': level})
        else:
            for rep in range(repeats):
                instance_specs.append({**entry, 'repeat': rep})

    manifest = []
    for inst_idx, entry in enumerate(instance_specs):
        for mode in modes:
            for index in indices:
                run = {k: v for k, v in entry.items() if k != 'repeat'}
                run.update({
                    'run_idx': len(manifest),
                    # one seed per instance, shared across modes and indices
                    'seed': base_seed + inst_idx,
                    'mode': mode,
                    'power_index': index,
                    'max_players': max_players,
                })
                manifest.append(run)

    return manifest
