from __future__ import annotations

import logging
import os
import shutil
import subprocess
import wave
from pathlib import Path

logger = logging.getLogger(__name__)

CONTRACT_SAMPLE_RATE = 16000


class FfmpegError(RuntimeError):
    """Raised when an ffmpeg conversion fails or ffmpeg cannot be found."""


def _ffmpeg_executable_name() -> str:
    return "ffmpeg.exe" if os.name == "nt" else "ffmpeg"


def project_ffmpeg_candidates() -> list[Path]:
    exe_name = _ffmpeg_executable_name()
    cwd = Path.cwd()
    return [cwd / "tools" / "ffmpeg" / "bin" / exe_name, cwd / "bin" / exe_name]


def resolve_ffmpeg_command(ffmpeg_path: Path | None = None) -> str:
    if ffmpeg_path is not None:
        return str(Path(ffmpeg_path).expanduser())
    for candidate in project_ffmpeg_candidates():
        if candidate.exists():
            return str(candidate)
    return shutil.which(_ffmpeg_executable_name()) or _ffmpeg_executable_name()


def get_ffmpeg_version(ffmpeg_path: Path | None = None) -> str | None:
    command = resolve_ffmpeg_command(ffmpeg_path)
    try:
        completed = subprocess.run([command, "-version"], capture_output=True, text=True, check=False)
    except FileNotFoundError:
        return None
    if completed.returncode != 0:
        return None
    first_line = completed.stdout.splitlines()[0] if completed.stdout else "ffmpeg detected"
    return f"{first_line.strip()} (command: {command})"


def convert_to_contract_wav(input_path: Path, output_path: Path, ffmpeg_path: Path | None = None) -> Path:
    """Convert any media file to 16 kHz mono PCM16 WAV."""

    command = resolve_ffmpeg_command(ffmpeg_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    args = [
        command,
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-i",
        str(input_path),
        "-vn",
        "-c:a",
        "pcm_s16le",
        "-ac",
        "1",
        "-ar",
        str(CONTRACT_SAMPLE_RATE),
        str(output_path),
    ]
    logger.info("Converting %s to contract WAV", input_path.name)
    try:
        subprocess.run(args, check=True, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise FfmpegError(
            f"ffmpeg not found (command: {command}). Install ffmpeg or set NOTEWRIGHT_FFMPEG_PATH."
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else "Unknown ffmpeg error."
        raise FfmpegError(stderr) from exc
    return output_path


def wav_duration_seconds(wav_path: Path) -> float:
    with wave.open(str(wav_path), "rb") as handle:
        rate = handle.getframerate()
        return handle.getnframes() / float(rate) if rate else 0.0
