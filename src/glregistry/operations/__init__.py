"""
Operations package - CLI support layer.

Centralizes error-to-exit-code mapping and output formatting so the Typer
commands stay thin and testable.
"""
from .mappers import exit_code_for, run_and_exit

__all__ = ["exit_code_for", "run_and_exit"]
