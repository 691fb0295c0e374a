#!/usr/bin/env python3
"""
Command-line interface for running scripts and workflows.
"""

import asyncio
import logging
import sys

import click

from config import env_manager
from script_tools.executor import ScriptExecutor, build_arguments, parse_parameter_assignments
from script_tools.registry import ScriptRegistry

from .definition import Workflow
from .engine import WorkflowController
from .exceptions import CycleError, WorkflowDefinitionError
from .scheduler import GraphScheduler
from .state import RunStatus


def _configure_logging():
    level = str(env_manager.get_setting("log_level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_workflow(path: str) -> Workflow:
    try:
        return Workflow.from_file(path)
    except (FileNotFoundError, WorkflowDefinitionError) as e:
        raise click.ClickException(str(e))


@click.group()
@click.option("--scripts", "scripts_path", help="Path to scripts_config.json")
@click.option("--project-root", help="Project root used to resolve script paths")
@click.pass_context
def cli(ctx, scripts_path, project_root):
    """Run scripts and script workflows."""
    env_manager.load()
    _configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["registry"] = ScriptRegistry.from_config(scripts_path)
    ctx.obj["project_root"] = project_root


@cli.command("list-scripts")
@click.pass_context
def list_scripts(ctx):
    """List the registered scripts."""
    for script in ctx.obj["registry"].list_scripts():
        click.echo(f"{script.id}\t{script.type.value}\t{script.name}")


@cli.command("run-script")
@click.argument("script_id")
@click.option("--param", "-p", "params", multiple=True, help="Parameter value as name=value")
@click.pass_context
def run_script(ctx, script_id, params):
    """Run a single script, streaming its output."""
    script = ctx.obj["registry"].lookup(script_id)
    if script is None:
        raise click.ClickException(f"Unknown script: {script_id}")

    try:
        values = parse_parameter_assignments(list(params))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--param")

    def echo(stream_name, text):
        click.echo(text, nl=False, err=stream_name == "stderr")

    executor = ScriptExecutor(project_root=ctx.obj["project_root"])
    result = asyncio.run(
        executor.execute_streaming(script, build_arguments(script, values), output_callback=echo)
    )
    if result.return_code == -1 and result.stderr:
        click.echo(result.stderr, err=True)
    sys.exit(0 if result.success else 1)


@cli.command("order")
@click.argument("workflow_file", type=click.Path(exists=True, dir_okay=False))
def order(workflow_file):
    """Print the execution order of a workflow."""
    workflow = _load_workflow(workflow_file)
    try:
        node_ids = GraphScheduler().order(workflow)
    except CycleError as e:
        raise click.ClickException(e.message)

    for index, node_id in enumerate(node_ids, start=1):
        node = workflow.get_node(node_id)
        click.echo(f"{index}. {node_id} ({node.script_id})")


@cli.command("run-workflow")
@click.argument("workflow_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def run_workflow(ctx, workflow_file):
    """Run a workflow and print its log."""
    workflow = _load_workflow(workflow_file)
    controller = WorkflowController(ctx.obj["registry"], project_root=ctx.obj["project_root"])

    printed = 0

    def on_update(snapshot):
        nonlocal printed
        click.echo(snapshot.overall_output[printed:], nl=False)
        printed = len(snapshot.overall_output)

    controller.add_observer(on_update)
    final = controller.run(workflow)

    if final.status != RunStatus.SUCCEEDED:
        click.echo(f"Error: {final.error}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
