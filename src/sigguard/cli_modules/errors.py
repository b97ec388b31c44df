"""CLI error handling utilities.

Every command is wrapped in :func:`error_boundary`, which turns library
exceptions into an ``Error: ...`` line on stderr and a stable exit code.
"""

from __future__ import annotations

import functools
import logging
from enum import Enum
from typing import Any, Callable, TypeVar

import typer

from sigguard.errors import (
    ConfigurationError,
    CredentialsError,
    GitCommandError,
    ProviderError,
    RepositoryError,
    SigguardError,
    SignatureIntrospectionError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode(Enum):
    """Standard CLI exit codes."""

    # General errors (1-9)
    VERIFICATION_FAILED = 1
    USAGE_ERROR = 2
    GENERAL_ERROR = 3

    # Configuration errors (30-39)
    CONFIG_INVALID = 30
    CREDENTIALS_MISSING = 31

    # Identity provider errors (40-49)
    PROVIDER_ERROR = 40

    # Repository errors (50-59)
    REPOSITORY_ERROR = 50
    SUBPROCESS_ERROR = 51


# =============================================================================
# Exception Classes
# =============================================================================


class CLIError(Exception):
    """Base exception for CLI errors.

    Attributes:
        message: Error message
        code: Error code
        hint: Helpful hint for resolution
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.GENERAL_ERROR,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return "\n".join(parts)


class UsageError(CLIError):
    """Error when an option value is not accepted."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message, code=ErrorCode.USAGE_ERROR, hint=hint)


def to_cli_error(error: SigguardError) -> CLIError:
    """Map a library exception to its exit code and hint."""
    message = str(error)

    if isinstance(error, CredentialsError):
        return CLIError(
            message,
            ErrorCode.CREDENTIALS_MISSING,
            hint=f"Export {error.variable} with a token that can read collaborators.",
        )
    if isinstance(error, ConfigurationError):
        return CLIError(
            message,
            ErrorCode.CONFIG_INVALID,
            hint="Check the configuration file, SIGGUARD_* variables and options.",
        )
    if isinstance(error, ProviderError):
        hint = None
        if error.status in (401, 403):
            hint = "Check that the token is valid and has access to the repository."
        elif error.status == 404:
            hint = "Check the repository owner and name."
        return CLIError(message, ErrorCode.PROVIDER_ERROR, hint=hint)
    if isinstance(error, SignatureIntrospectionError) or (
        isinstance(error, GitCommandError) and error.returncode is None
    ):
        return CLIError(
            message,
            ErrorCode.SUBPROCESS_ERROR,
            hint="Check that git is installed and on PATH.",
        )
    if isinstance(error, RepositoryError):
        return CLIError(
            message,
            ErrorCode.REPOSITORY_ERROR,
            hint="Fetch enough history for both refs (e.g. fetch-depth: 0).",
        )
    return CLIError(message, ErrorCode.GENERAL_ERROR)


def _echo_error(error: CLIError) -> None:
    typer.echo(typer.style(f"Error: {error.message}", fg="red"), err=True)
    if error.hint:
        typer.echo(typer.style(f"Hint: {error.hint}", fg="yellow"), err=True)


# =============================================================================
# Decorator
# =============================================================================


F = TypeVar("F", bound=Callable[..., Any])


def error_boundary(func: F) -> F:
    """Error boundary decorator.

    Catches all exceptions and converts them to CLI errors.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except CLIError as e:
            _echo_error(e)
            raise typer.Exit(e.code.value)
        except SigguardError as e:
            cli_error = to_cli_error(e)
            logger.debug("Run aborted", exc_info=True)
            _echo_error(cli_error)
            raise typer.Exit(cli_error.code.value)
        except Exception as e:
            logger.exception("Unexpected error")
            typer.echo(typer.style(f"Error: {e}", fg="red"), err=True)
            raise typer.Exit(ErrorCode.GENERAL_ERROR.value)

    return wrapper  # type: ignore
