"""
Configuration Module

Application settings and experiment configuration.
"""

from app.config.experiments import (
    DEFAULT_EXPERIMENTS,
    ExperimentDefinition,
    ExperimentRegistry,
    load_experiment_registry,
)
from app.config.settings import RecoveryInterval, Settings, get_settings

__all__ = [
    "Settings",
    "RecoveryInterval",
    "get_settings",
    "ExperimentDefinition",
    "ExperimentRegistry",
    "DEFAULT_EXPERIMENTS",
    "load_experiment_registry",
]
