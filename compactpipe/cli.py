"""
CLI interface for compactpipe.

Provides commands to validate, inspect and render pipelines described in
topology YAML files.
"""

import json
import sys
from pathlib import Path

import click
import yaml

from compactpipe import __version__
from compactpipe.errors import CompactPipeError
from compactpipe.utils import print_pipeline, setup_logging_from_config


def _build(ctx, topology: Path):
    """Load a topology file and build its pipeline, exiting 1 on failure."""
    from compactpipe.config import load_topology_config

    try:
        config = load_topology_config(topology)
        setup_logging_from_config(config, verbose=ctx.obj.get("verbose", False))
        return config, config.build_pipeline()
    except CompactPipeError as e:
        click.echo(f"✗ {topology}: {e}", err=True)
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="compactpipe")
@click.option("--verbose", "-v", is_flag=True, help="Log each registration to the console")
@click.pass_context
def main(ctx, verbose):
    """
    compactpipe - Deployment pipeline builder.

    Build pull/build/deploy pipelines from topology files.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command("validate")
@click.argument("topology", type=click.Path(path_type=Path))
@click.pass_context
def validate_cmd(ctx, topology: Path):
    """Check that a topology file builds a pipeline."""
    _, pipeline = _build(ctx, topology)
    deploy_stage = pipeline.deploy_stage
    action_count = len(deploy_stage.actions) if deploy_stage else 0
    click.echo(f"✓ {topology}: {len(pipeline.stages)} stages, {action_count} deploy actions")


@main.command("synth")
@click.argument("topology", type=click.Path(path_type=Path))
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    show_default=True,
    help="Output format",
)
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write to file instead of stdout")
@click.pass_context
def synth_cmd(ctx, topology: Path, output_format: str, output):
    """Render the pipeline document of a topology file."""
    _, pipeline = _build(ctx, topology)
    document = {
        "Pipeline": pipeline.to_dict(),
        "Functions": [f.to_dict() for f in pipeline.companion_functions],
    }
    if output_format == "yaml":
        rendered = yaml.safe_dump(document, sort_keys=False)
    else:
        rendered = json.dumps(document, indent=2) + "\n"

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered)
        click.echo(f"✓ Wrote {output}", err=True)
    else:
        sys.stdout.write(rendered)


@main.command("describe")
@click.argument("topology", type=click.Path(path_type=Path))
@click.pass_context
def describe_cmd(ctx, topology: Path):
    """Show the stages and actions of a topology file."""
    config, pipeline = _build(ctx, topology)
    print_pipeline(pipeline, config.name or str(topology))


if __name__ == "__main__":
    main()
