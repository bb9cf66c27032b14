"""MLflow setup for tracing completion calls made through DSPy."""

import logging
from contextlib import contextmanager
from typing import Optional

import mlflow

from datamapper.config import get_config

logger = logging.getLogger(__name__)

# Track if autolog has been initialized
_autolog_initialized = False


def setup_mlflow_tracing(experiment_name: Optional[str] = None) -> bool:
    """
    Set up MLflow tracing for DSPy calls.

    Does nothing unless MLFLOW_ENABLED is set. Safe to call more than once.

    Returns:
        True if tracing is active
    """
    global _autolog_initialized

    config = get_config()
    if not config.mlflow.enabled:
        return False

    if config.mlflow.tracking_uri:
        mlflow.set_tracking_uri(config.mlflow.tracking_uri)
    mlflow.set_experiment(experiment_name or config.mlflow.experiment_name)

    if not _autolog_initialized:
        mlflow.dspy.autolog()
        _autolog_initialized = True
        logger.info("MLflow DSPy autolog enabled")
    return True


@contextmanager
def mlflow_run(run_name: Optional[str] = None, experiment_name: Optional[str] = None):
    """
    Group the calls made inside the block under a single MLflow run.

    Yields None (and records nothing) when MLflow is disabled.
    """
    if not setup_mlflow_tracing(experiment_name):
        yield None
        return

    config = get_config()
    with mlflow.start_run(run_name=run_name or config.mlflow.run_name) as run:
        yield run


def log_migration_metrics(metrics: dict) -> None:
    """Log numeric run metrics to the active MLflow run, if any."""
    if mlflow.active_run() is None:
        return
    mlflow.log_metrics({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
