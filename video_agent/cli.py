"""视频分析代理命令行入口"""

import asyncio
from typing import Optional, Sequence

import click

from . import __version__
from .exceptions import VideoAgentError
from .metadata_provider import SimulatedMetadataProvider, YtDlpMetadataProvider
from .models import ProcessingRun
from .operations import build_default_registry
from .orchestrator import Orchestrator
from .presentation import TaskListRenderer, render_metadata, render_summary
from .resolver import extract_video_id


def build_orchestrator(simulate: bool = False, delay: Optional[float] = None) -> Orchestrator:
    if simulate:
        provider = SimulatedMetadataProvider() if delay is None else SimulatedMetadataProvider(delay=delay)
    else:
        provider = YtDlpMetadataProvider()
    return Orchestrator(registry=build_default_registry(), metadata_provider=provider)


async def run_pipeline(
    orchestrator: Orchestrator,
    url: str,
    operation_ids: Sequence[str],
    quiet: bool = False,
) -> ProcessingRun:
    """解析 → 获取元数据 → 执行，与 Orchestrator.process_video 相同但在执行前展示视频信息"""
    video_id = extract_video_id(url)
    selection = orchestrator.validate_selection(operation_ids)

    if not quiet:
        click.echo(f"Fetching metadata for {video_id}...")
    metadata = await orchestrator.fetch_metadata(video_id)

    if quiet:
        return await orchestrator.start_run(metadata, selection)

    render_metadata(metadata)
    unsubscribe = orchestrator.subscribe(TaskListRenderer())
    try:
        run = await orchestrator.start_run(metadata, selection)
    finally:
        unsubscribe()
    render_summary(run)
    return run


@click.group()
@click.version_option(version=__version__)
def cli():
    """YouTube video analysis agent - run analysis operations on a video."""
    pass


@cli.command("operations")
def list_operations():
    """List available operations."""
    registry = build_default_registry()
    click.echo("Available operations:\n")
    for operation in registry:
        click.echo(f"  {operation.operation_id}")
        click.echo(f"    {operation.name} - {operation.description}")


@cli.command("process")
@click.argument("url")
@click.option("--action", "-a", "actions", multiple=True, help="Operation id (repeatable, runs in the given order)")
@click.option("--all", "run_all", is_flag=True, help="Run every available operation")
@click.option("--simulate", is_flag=True, help="Use the simulated metadata provider instead of yt-dlp")
@click.option("--delay", type=float, default=None, help="Simulated fetch delay in seconds")
@click.option("--json", "as_json", is_flag=True, help="Print the finished run as JSON")
def process(url: str, actions: Sequence[str], run_all: bool, simulate: bool, delay: Optional[float], as_json: bool):
    """Analyze the video at URL with the selected operations."""
    orchestrator = build_orchestrator(simulate=simulate, delay=delay)
    operation_ids = list(orchestrator.registry.ids()) if run_all else list(actions)

    try:
        run = asyncio.run(run_pipeline(orchestrator, url, operation_ids, quiet=as_json))
    except VideoAgentError as e:
        click.echo(f"✗ Failed: {e}", err=True)
        raise SystemExit(1)

    if as_json:
        click.echo(orchestrator.export_run_json(run))


def main():
    cli()


if __name__ == "__main__":
    main()
