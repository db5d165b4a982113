"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer

from ..errors import HTTPStatusError, RegistryToolError

T = TypeVar('T')

logger = logging.getLogger(__name__)

# Every unrecoverable failure exits 1; the table documents which errors are
# expected so unknown ones can be reported with their type.
EXIT_CODES = {
    "ConfigurationError": 1,
    "AuthExchangeError": 1,
    "CredentialUnavailable": 1,
    "HTTPStatusError": 1,
    "TransportError": 1,
    "ContentError": 1,
    "UnsupportedMediaType": 1,
    "FileNotInArchive": 1,
    "ValueError": 1,
}

FALLBACK_EXIT_CODE = 1


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to exit code.

    Returns:
        Exit code (always 1 today; 0 is reserved for success)
    """
    return EXIT_CODES.get(type(exc).__name__, FALLBACK_EXIT_CODE)


def describe_error(exc: BaseException) -> str:
    """One-line human-readable description of a failure."""
    if isinstance(exc, RegistryToolError) or type(exc).__name__ in EXIT_CODES:
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit. This centralizes error handling so
    CLI commands don't need individual try/except blocks.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except typer.Exit:
        raise
    except Exception as e:
        from .printers import print_error, print_http_error
        if isinstance(e, HTTPStatusError):
            print_http_error(e)
        else:
            print_error(describe_error(e))
        logger.debug("Command failed", exc_info=True)
        raise typer.Exit(code=exit_code_for(e)) from e
