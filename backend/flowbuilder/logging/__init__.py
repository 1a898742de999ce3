"""
Run Logging Module

Provides per-run structured logging for workflow executions.
"""
from flowbuilder.logging.run_logger import RunEvent, RunLogger

__all__ = ['RunEvent', 'RunLogger']
