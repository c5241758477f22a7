"""CLI entry point for llm-translate (``python -m cli``)."""

from cli.commands.main import cli

if __name__ == "__main__":
    cli()
