"""Command-line interface for sigguard."""

import typer

from sigguard.cli_modules import register_commands

app = typer.Typer(
    name="sigguard",
    help="Commit signature verification against trusted collaborators",
    add_completion=False,
)

register_commands(app)


@app.command(name="version")
def version_cmd() -> None:
    """Show the installed sigguard version."""
    from sigguard import __version__

    typer.echo(f"sigguard {__version__}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
