"""Context assembly and background maintenance."""

from .assembler import ContextAssembler, assemble_context, split_window
from .maintenance import MaintenanceWorker
from .tokens import CharTokenEstimator, TokenEstimator

__all__ = [
    "CharTokenEstimator",
    "ContextAssembler",
    "MaintenanceWorker",
    "TokenEstimator",
    "assemble_context",
    "split_window",
]
