from __future__ import annotations

import datetime as dt
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from notewright.audio.ffmpeg import FfmpegError
from notewright.config import get_settings
from notewright.doctor import run_doctor
from notewright.errors import NotewrightError
from notewright.logging_setup import configure_logging
from notewright.pipeline.types import PipelineCancelled, PipelineFailure, PipelineResult, ProgressUpdate
from notewright.services import NotewrightService

app = typer.Typer(help="Notewright - turn meeting recordings into vault notes, offline")
models_app = typer.Typer(help="Inspect, download and remove local models")
app.add_typer(models_app, name="models")
console = Console()

_STAGE_LABELS = {
    "downloadingModels": "Preparing models",
    "transcribing": "Transcribing",
    "summarizing": "Summarizing",
    "writing": "Writing to vault",
}


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_dir)


def _parse_started_at(value: str | None) -> dt.datetime | None:
    if value is None:
        return None
    try:
        return dt.datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Expected ISO date/time, got '{value}'") from exc


@app.command()
def doctor() -> None:
    """Check local runtime prerequisites."""

    settings = get_settings()
    checks = run_doctor(settings)

    table = Table(title="Notewright doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")

    failed = False
    for check in checks:
        status = check.status.upper()
        color = {"ok": "green", "warn": "yellow", "fail": "red"}.get(check.status, "white")
        table.add_row(check.name, f"[{color}]{status}[/{color}]", check.detail)
        if check.status == "fail":
            failed = True

    console.print(table)
    if failed:
        raise typer.Exit(code=1)


@app.command()
def process(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    vault: Path | None = typer.Option(None, "--vault", help="Vault root (defaults to NOTEWRIGHT_VAULT_DIR)"),
    model: str | None = typer.Option(None, "--model", help="small|medium|large"),
    keep_audio: bool | None = typer.Option(None, "--keep-audio/--no-keep-audio"),
    keep_transcript: bool | None = typer.Option(None, "--keep-transcript/--no-keep-transcript"),
    started_at: str | None = typer.Option(None, "--started-at", help="Recording start, ISO 8601"),
) -> None:
    """Transcribe, summarize and file one recording into the vault."""

    _setup_logging()
    service = NotewrightService()
    try:
        session = service.open_session(vault_dir=vault, asr_model=model)
    except ValueError as exc:
        console.print(f"[red]process failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    try:
        context = service.prepare_context(
            file_path,
            started_at=_parse_started_at(started_at),
            keep_audio=keep_audio,
            keep_transcript=keep_transcript,
        )
    except FfmpegError as exc:
        session.close()
        console.print(f"[red]ffmpeg error:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    except (FileNotFoundError, ValueError) as exc:
        session.close()
        console.print(f"[red]process failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    with session, Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task(_STAGE_LABELS["downloadingModels"], total=1.0)

        def on_progress(update: ProgressUpdate | None) -> None:
            if update is None:
                progress.update(task_id, completed=1.0)
                return
            progress.update(task_id, description=_STAGE_LABELS[update.stage.value], completed=update.fraction)

        future = session.start(context, on_progress)
        try:
            outcome = future.result()
        except KeyboardInterrupt:
            session.cancel()
            console.print("[yellow]Cancelled.[/yellow]")
            raise typer.Exit(code=130)

    if isinstance(outcome, PipelineCancelled):
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(code=130)
    if isinstance(outcome, PipelineFailure):
        console.print(f"[red]{outcome.message}[/red]")
        console.print(f"[dim]{outcome.debug_output}[/dim]")
        raise typer.Exit(code=2)

    assert isinstance(outcome, PipelineResult)
    console.print(f"[green]Note written:[/green] {outcome.note_path}")
    if outcome.audio_path is not None:
        console.print(f"[green]Audio kept:[/green] {outcome.audio_path}")


@models_app.command("validate")
def models_validate(model: str | None = typer.Option(None, "--model", help="small|medium|large")) -> None:
    """Report missing or invalid model files."""

    try:
        manager = NotewrightService().model_manager(model)
    except ValueError as exc:
        console.print(f"[red]validate failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    validation = manager.validate()

    table = Table(title="Models")
    table.add_column("Id")
    table.add_column("Status")
    table.add_column("Path")
    for spec in manager.specs.values():
        if spec.id in validation.missing:
            status = "[yellow]MISSING[/yellow]"
        elif spec.id in validation.invalid:
            status = "[red]INVALID[/red]"
        else:
            status = "[green]OK[/green]"
        table.add_row(spec.id, status, str(spec.path))
    console.print(table)
    if not validation.is_ready:
        raise typer.Exit(code=1)


@models_app.command("ensure")
def models_ensure(
    model: str | None = typer.Option(None, "--model", help="small|medium|large"),
    download: bool = typer.Option(False, "--download", help="Fetch missing models from the Hugging Face Hub"),
) -> None:
    """Make sure every required model is present."""

    _setup_logging()
    try:
        manager = NotewrightService().model_manager(model, allow_download=download or None)
    except ValueError as exc:
        console.print(f"[red]ensure failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    try:
        manager.ensure_ready(lambda update: console.print(f"{update.fraction:>4.0%} {update.label}"))
    except NotewrightError as exc:
        console.print(f"[red]{exc.user_message}[/red] {exc.debug_summary}")
        raise typer.Exit(code=2) from exc
    console.print("[green]Models ready.[/green]")


@models_app.command("remove")
def models_remove(
    ids: list[str] = typer.Argument(..., help="Model ids as listed by `models validate`"),
    model: str | None = typer.Option(None, "--model", help="small|medium|large"),
) -> None:
    """Delete downloaded model files."""

    _setup_logging()
    try:
        NotewrightService().model_manager(model).remove(ids)
    except ValueError as exc:
        console.print(f"[red]remove failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    console.print(f"[green]Removed:[/green] {', '.join(ids)}")


if __name__ == "__main__":
    app()
