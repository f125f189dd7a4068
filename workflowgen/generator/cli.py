"""CLI commands for snippet-driven workflow generation."""

import asyncio
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import structlog

from workflowgen.config import get_settings
from workflowgen.generator.engine import WorkflowGenerator
from workflowgen.log import configure_logging
from workflowgen.model.parser import ModelParser

logger = structlog.get_logger(__name__)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def generate(ctx, verbose: bool):
    """Generate Logic App workflows from a target model and snippet library."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@generate.command()
@click.argument('model_file', type=click.Path(exists=True, path_type=Path))
@click.option('--templates', '-t', multiple=True, type=click.Path(path_type=Path),
              help='Snippet folder; repeat to search several folders in order')
@click.option('--output', '-o', type=click.Path(path_type=Path),
              help='Generation folder (default: from settings)')
@click.option('--concurrency', '-c', type=click.IntRange(min=1),
              help='Process managers generated at the same time')
@click.option('--bind-branches', is_flag=True,
              help='Also chain actions inside Switch cases and defaults')
@click.pass_context
def model(ctx, model_file: Path, templates: Tuple[Path, ...], output: Optional[Path],
          concurrency: Optional[int], bind_branches: bool):
    """Generate workflow definitions for every process manager in MODEL_FILE."""
    verbose = ctx.obj.get('verbose', False)

    overrides = {}
    if templates:
        overrides['template_folders'] = [str(t) for t in templates]
    if output:
        overrides['generation_folder'] = str(output)
    if concurrency:
        overrides['max_concurrent'] = concurrency
    if bind_branches:
        overrides['bind_branch_actions'] = True
    settings = get_settings().model_copy(update=overrides)

    try:
        click.echo(f"📖 Parsing target model: {model_file}")
        parser = ModelParser()
        target = parser.parse_file(model_file)

        if parser.warnings:
            click.echo(f"⚠️  Found {len(parser.warnings)} warnings:")
            for warning in parser.warnings:
                click.echo(f"   • {warning.path}: {warning.message}")

        click.echo(f"🔎 Snippet folders: {', '.join(settings.template_folders)}")
        click.echo(f"🏗️  Generating into: {settings.generation_folder}")

        generator = WorkflowGenerator.from_settings(target, settings)
        result = asyncio.run(generator.generate())
    except ValueError as e:
        click.echo(f"Validation failed: {e}")
        sys.exit(1)
    except FileNotFoundError as e:
        click.echo(f"File not found: {e}")
        sys.exit(1)

    click.echo("")
    click.echo(f"📊 Processed {len(result.processed)} process managers, skipped {len(result.skipped)}")
    if verbose and result.skipped:
        for name in result.skipped:
            click.echo(f"   • skipped {name}")

    if result.generated_files:
        click.echo("📁 Generated files:")
        for path in result.generated_files:
            click.echo(f"   {path}")

    if result.errors:
        click.echo(f"❌ Found {len(result.errors)} errors:")
        for error in result.errors:
            click.echo(f"   • {error.message}")
        sys.exit(1)

    click.echo("✅ Generation completed successfully")


@generate.command()
@click.argument('model_file', type=click.Path(exists=True, path_type=Path))
def validate(model_file: Path):
    """Validate a target model file without generating anything."""
    click.echo(f"🔍 Validating target model: {model_file}")

    parser = ModelParser()
    try:
        target = parser.parse_file(model_file)
    except ValueError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)

    if parser.warnings:
        click.echo(f"⚠️  Found {len(parser.warnings)} warnings:")
        for warning in parser.warnings:
            click.echo(f"   • {warning.path}: {warning.message}")

    click.echo("✅ Target model is valid!")
    click.echo("")
    click.echo("📊 Model Summary:")
    for application in target.applications:
        click.echo(f"   • {application.name}")
        for process_manager in application.process_managers:
            activities = 0
            if process_manager.workflow_model is not None:
                activities = sum(len(c.activities) for c in process_manager.workflow_model.walk())
            click.echo(
                f"     - {process_manager.name}: {len(process_manager.snippets)} snippets, "
                f"{activities} activities"
            )
