"""CLI commands for ytstudio using Typer and Rich.

Implements:
- generate: Run every stage for a topic and an image, saving the artifacts
- check: Validate configuration and show the effective settings
"""

import asyncio
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ytstudio import validate_configuration
from ytstudio.config import settings
from ytstudio.errors import ConfigurationError
from ytstudio.orchestrator import StudioPipeline
from ytstudio.orchestrator.factory import build_pipeline
from ytstudio.schemas.artifacts import VoicePreference
from ytstudio.services.file_manager import FileManager

app = typer.Typer(name="ytstudio", help="AI YouTube Studio: script, voiceover and video generation")
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_image(path: Path) -> tuple[bytes, str]:
    """Load an image file and its MIME type, exiting on anything else."""
    media_type, _ = mimetypes.guess_type(path.name)
    if not path.is_file():
        console.print(f"[red]Error:[/red] Image not found: {path}")
        raise typer.Exit(code=1)
    if not media_type or not media_type.startswith("image/"):
        console.print(f"[red]Error:[/red] Not an image file: {path}")
        raise typer.Exit(code=1)
    return path.read_bytes(), media_type


@app.command()
def generate(
    topic: str = typer.Argument(..., help="What the video is about"),
    image: Path = typer.Option(..., "--image", "-i", help="Base image to animate"),
    voice: VoicePreference = typer.Option(VoicePreference.FEMALE, "--voice", "-v", help="Voiceover voice"),
    skip_audio: bool = typer.Option(False, "--skip-audio", help="Continue without a voiceover"),
    voice_provider: Optional[str] = typer.Option(None, "--voice-provider", help="simulated or gemini"),
    resubmits: int = typer.Option(0, "--resubmits", min=0, help="Resubmit a failed video this many times"),
    max_wait: Optional[float] = typer.Option(None, "--max-wait", help="Give up polling after this many seconds"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Artifact directory"),
    verbose: bool = typer.Option(False, "--verbose", help="Show pipeline logs"),
):
    """Generate a script, an optional voiceover and a video for TOPIC.

    Runs every stage in order without prompting. Artifacts are written to a
    new run directory under the output directory.
    """
    _configure_logging(verbose)

    # Fail-fast configuration validation
    try:
        validate_configuration()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(code=1)

    image_bytes, media_type = _read_image(image)
    config = settings.pipeline
    if max_wait is not None:
        config = config.model_copy(update={"video_poll_max_wait": max_wait})

    pipeline = build_pipeline(voice_provider, config)
    asyncio.run(_generate_async(
        pipeline, topic, image_bytes, media_type, voice,
        skip_audio, resubmits, FileManager(output_dir),
    ))


async def _generate_async(
    pipeline: StudioPipeline,
    topic: str,
    image_bytes: bytes,
    media_type: str,
    voice: VoicePreference,
    skip_audio: bool,
    resubmits: int,
    file_mgr: FileManager,
):
    """Async implementation of generate command."""
    state = pipeline.state
    run_id = uuid.uuid4()

    # Stage 1: script
    pipeline.set_topic(topic)
    with console.status("[bold green]Generating script..."):
        ok = await pipeline.generate_script()
    if not ok:
        console.print(f"[red]✗ Script failed:[/red] {state.last_error.message}")
        raise typer.Exit(code=1)
    console.print(Panel(state.script, title="Script", expand=False))

    # Stage 2: voiceover
    pipeline.choose_voice(voice)
    if skip_audio:
        pipeline.skip_audio()
    else:
        with console.status(f"[bold green]Generating {voice.value} voiceover..."):
            ok = await pipeline.generate_audio()
        if not ok:
            console.print(f"[yellow]Voiceover skipped:[/yellow] {state.audio_error.message}")
            pipeline.skip_audio()

    # Stage 3: image
    if not pipeline.upload_image(image_bytes, media_type):
        console.print(f"[red]Error:[/red] {state.last_error.message}")
        raise typer.Exit(code=1)

    # Stages 4-5: video
    with console.status("[bold green]Generating video (this can take several minutes)..."):
        ok = await pipeline.generate_video()
        while not ok and resubmits > 0 and state.last_error.resubmit_eligible:
            resubmits -= 1
            console.print(f"[yellow]Video failed, resubmitting:[/yellow] {state.last_error.message}")
            ok = await pipeline.resubmit_video()

    script_path = file_mgr.save_script(run_id, state.script)
    console.print(f"[green]Script:[/green] {script_path}")
    if state.audio is not None:
        audio_path = file_mgr.save_artifact(run_id, "voiceover", state.audio)
        console.print(f"[green]Voiceover:[/green] {audio_path}")

    if not ok:
        console.print(f"[red]✗ Video failed:[/red] {state.last_error.message}")
        raise typer.Exit(code=1)

    video_path = file_mgr.save_artifact(run_id, "video", state.video)
    console.print(f"[green]✓[/green] Video generation complete!")
    console.print(f"[green]Video:[/green] {video_path}")


@app.command()
def check():
    """Validate configuration and print the effective settings."""
    table = Table(title="ytstudio settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("API key", "set" if settings.api_key else "[red]missing[/red]")
    table.add_row("Script model", settings.models.script_llm)
    table.add_row("Video model", settings.models.video_gen)
    table.add_row("Voice provider", settings.pipeline.voice_provider)
    table.add_row("Retry attempts", str(settings.pipeline.retry_max_attempts))
    table.add_row("Retry initial delay", f"{settings.pipeline.retry_initial_delay:g}s")
    table.add_row("Poll interval", f"{settings.pipeline.video_poll_interval:g}s")
    max_wait = settings.pipeline.video_poll_max_wait
    table.add_row("Poll max wait", f"{max_wait:g}s" if max_wait else "unlimited")
    table.add_row("Output dir", str(settings.storage.output_dir))
    console.print(table)

    try:
        validate_configuration()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] Configuration OK")
