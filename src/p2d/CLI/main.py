"""
Command Line Interface for p2d.
"""
import logging

import click

from ..CONVERTERS.to_dockerfile import DockerfileConverter
from ..errors import P2DError
from ..UTILS.settings import Settings, load_settings
from ..UTILS.target_loader import load_target


@click.group()
@click.option('--env-file', default='.env', help='Settings file with P2D_* variables')
@click.option('--log-level', default=None, help='Log level (overrides P2D_LOG_LEVEL)')
@click.pass_context
def cli(ctx, env_file, log_level):
    """
    p2d - describe multi-stage image builds in Python.

    TARGET arguments name a Stage, or a function returning one, as
    module:attribute or path/to/file.py:attribute.
    """
    ctx.ensure_object(dict)
    try:
        settings = load_settings(env_file)
        if log_level:
            settings = Settings(**{**settings.model_dump(), "log_level": log_level})
    except ValueError as e:
        raise click.UsageError(str(e))
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj['settings'] = settings


def _load(ctx, target):
    try:
        return load_target(target)
    except (P2DError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@cli.command()
@click.argument('target')
@click.option('--format', '-f', 'output_format', type=click.Choice(['json', 'yaml']), default=None,
              help='Output format (defaults to P2D_OUTPUT_FORMAT)')
@click.pass_context
def plan(ctx, target, output_format):
    """Print the build plan of TARGET."""
    settings = ctx.obj['settings']
    stage = _load(ctx, target)
    try:
        build_plan = stage.build()
    except P2DError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if (output_format or settings.output_format) == 'yaml':
        click.echo(build_plan.to_yaml(), nl=False)
    else:
        click.echo(build_plan.to_json())


@cli.command()
@click.argument('target')
@click.option('--out', '-o', default=None, help='Write to this path instead of stdout')
@click.pass_context
def dockerfile(ctx, target, out):
    """Render TARGET and the stages it uses as a Dockerfile."""
    settings = ctx.obj['settings']
    stage = _load(ctx, target)
    converter = DockerfileConverter(stage, syntax=settings.dockerfile_syntax)
    try:
        if out:
            converter.convert(out)
            click.echo(f"Dockerfile written to {out}")
        else:
            click.echo(converter.render(), nl=False)
    except P2DError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
