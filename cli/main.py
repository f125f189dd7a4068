"""Main CLI entry point for the workflow snippet generator."""

import click
from pathlib import Path
import sys

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@click.group()
@click.version_option(version='1.0.0')
def cli():
    """Workflow Snippet Generator CLI - Build Logic App workflows from snippet libraries."""
    pass


def register_commands():
    """Register all CLI command groups."""
    from workflowgen.generator.cli import generate
    cli.add_command(generate)


register_commands()


if __name__ == '__main__':
    cli()
