"""
Experiment logger for responsibility sweeps
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import pandas as pd


class ExperimentLogger:
    """
    Brackets a sweep with start/end records and reports per-configuration results
    """

    def __init__(self, name: str = "backresp.experiment", config: Optional[Dict[str, Any]] = None):
        """
        Args:
            name: Logger name
            config: Sweep configuration echoed in the start record
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            self.logger.addHandler(handler)

        self.config = config or {}
        self.start_time: Optional[datetime] = None

    def log_experiment_start(self, config: Optional[Dict[str, Any]] = None) -> None:
        config = config if config is not None else self.config
        self.start_time = datetime.now()

        self.logger.info("=" * 80)
        self.logger.info(f"SWEEP START {self.start_time.isoformat()}")
        self.logger.info(
            f"Modes: {config.get('modes', ['optimistic'])} | "
            f"Indices: {config.get('power_indices', ['shapley'])} | "
            f"Instances: {len(config.get('instances', []))} | "
            f"Seed: {config.get('seed')}"
        )
        self.logger.info("=" * 80)

    def log_results(self, results: pd.DataFrame) -> None:
        """
        Log mean responsibility statistics per (mode, power index)

        Args:
            results: DataFrame produced by ExperimentRunner.run_grid
        """
        if results.empty:
            self.logger.warning("⚠️ No completed runs to summarize")
            return

        table = results.groupby(['mode', 'power_index']).agg(
            runs=('run_idx', 'count'),
            players=('n_players', 'mean'),
            resp_sum=('responsibility_sum', 'mean'),
            resp_max=('responsibility_max', 'mean'),
            games=('n_games_solved', 'mean'),
            time=('computation_time', 'mean'),
        )
        for (mode, index), row in table.iterrows():
            self.logger.info(
                f"  {mode}/{index}: {int(row['runs'])} runs, "
                f"{row['players']:.1f} players, Σ={row['resp_sum']:.3f}, "
                f"max={row['resp_max']:.3f}, {row['games']:.0f} games, {row['time']:.3f}s"
            )

    def log_experiment_end(self, results_summary: Dict[str, Any]) -> Optional[float]:
        """
        Log the end of the sweep

        Returns:
            Duration in seconds, or None if the start was never logged
        """
        duration = datetime.now() - self.start_time if self.start_time else None

        self.logger.info(f"SWEEP END after {duration}")
        self.logger.info(f"Results: {results_summary}")
        self.logger.info("=" * 80)
        return duration.total_seconds() if duration is not None else None

    def log_milestone(self, message: str) -> None:
        self.logger.info(f"✅ {message}")
