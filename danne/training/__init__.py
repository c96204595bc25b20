"""Training loop, learning-rate policies, checkpoints and config-driven runs."""

from .checkpoints import load_network, save_network
from .pipelines import load_preset, presets, run_pipeline
from .schedules import REGISTRY as SCHEDULES
from .trainer import Trainer

__all__ = [
    "SCHEDULES",
    "Trainer",
    "load_network",
    "load_preset",
    "presets",
    "run_pipeline",
    "save_network",
]
