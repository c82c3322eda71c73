from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from notewright.errors import WriteFailed
from notewright.vault.access import VaultAccess
from notewright.vault.contract import DestinationPaths

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VaultArtifacts:
    note: bytes
    transcript: bytes | None = None
    audio_source: Path | None = None


@dataclass(frozen=True, slots=True)
class CommitResult:
    note_path: Path
    audio_path: Path | None = None
    transcript_path: Path | None = None


def _temporary_sibling(destination: Path) -> tuple[int, Path]:
    fd, name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
    return fd, Path(name)


def write_atomically(data: bytes, destination: Path) -> Path:
    """Write `data` so readers see either the complete file or no file at all."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = _temporary_sibling(destination)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, destination)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return destination


def copy_atomically(source: Path, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = _temporary_sibling(destination)
    try:
        with os.fdopen(fd, "wb") as handle, source.open("rb") as reader:
            shutil.copyfileobj(reader, handle, length=1024 * 1024)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, destination)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return destination


class VaultWriteTransaction:
    """Writes one batch of meeting artifacts under a single vault scope.

    Order is transcript, audio, then the note, so the note's links only ever
    point at files that were already written.
    """

    def __init__(self, access: VaultAccess) -> None:
        self.access = access

    def commit(self, artifacts: VaultArtifacts, paths: DestinationPaths) -> CommitResult:
        with self.access.scoped() as root:
            transcript_path: Path | None = None
            audio_path: Path | None = None

            if artifacts.transcript is not None and paths.transcript is not None:
                transcript_path = self._write(root / paths.transcript, data=artifacts.transcript)
            if artifacts.audio_source is not None and paths.audio is not None:
                audio_path = self._write(root / paths.audio, source=artifacts.audio_source)
            note_path = self._write(root / paths.note, data=artifacts.note)

        return CommitResult(note_path=note_path, audio_path=audio_path, transcript_path=transcript_path)

    @staticmethod
    def _write(destination: Path, *, data: bytes | None = None, source: Path | None = None) -> Path:
        try:
            if source is not None:
                copy_atomically(source, destination)
            else:
                write_atomically(data or b"", destination)
        except OSError as exc:
            logger.error("Vault write failed for %s: %s", destination, exc)
            raise WriteFailed(str(destination), str(exc)) from exc
        logger.info("Wrote %s", destination)
        return destination
