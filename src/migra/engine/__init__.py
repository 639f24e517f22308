"""Execution engines: run an operation across an ordered list of services."""

from migra.engine.base import BaseEngine
from migra.engine.dispatch import DRY_RUN_OUTPUT, invoke_operation
from migra.engine.parallel import ParallelEngine
from migra.engine.result import ExecutionSummary, summarize_results
from migra.engine.runner import DEFAULT_MAX_PARALLEL, run_bounded
from migra.engine.sequential import SequentialEngine

__all__ = [
    "BaseEngine",
    "SequentialEngine",
    "ParallelEngine",
    "ExecutionSummary",
    "summarize_results",
    "invoke_operation",
    "run_bounded",
    "DRY_RUN_OUTPUT",
    "DEFAULT_MAX_PARALLEL",
]
