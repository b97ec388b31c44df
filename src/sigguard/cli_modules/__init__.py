"""CLI modules for sigguard.

    - errors: exit codes and the error boundary shared by all commands
    - verify: the ``verify-signatures`` command
"""

import typer

from sigguard.cli_modules.errors import CLIError, ErrorCode, error_boundary
from sigguard.cli_modules.verify import verify_signatures_cmd


def register_commands(parent_app: typer.Typer) -> None:
    """Register commands with the parent app.

    Args:
        parent_app: Parent Typer app to register commands to
    """
    parent_app.command(name="verify-signatures")(verify_signatures_cmd)


__all__ = [
    "register_commands",
    "verify_signatures_cmd",
    "CLIError",
    "ErrorCode",
    "error_boundary",
]
