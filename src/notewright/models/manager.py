from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol, Sequence

from notewright.config import ASR_MODEL_ALIASES, Settings
from notewright.errors import ModelUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ModelSpec:
    id: str
    label: str
    path: Path
    repo_id: str
    # Set for single-file models; directory models list the files they must contain.
    filename: str | None = None
    required_files: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ModelProgress:
    fraction: float
    label: str


@dataclass(slots=True)
class ModelValidation:
    missing: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return not self.missing and not self.invalid


ProgressCallback = Callable[[ModelProgress], None]


class ModelManager(Protocol):
    def ensure_ready(self, on_progress: ProgressCallback | None = None) -> None: ...

    def validate(self) -> ModelValidation: ...

    def remove(self, ids: Sequence[str]) -> None: ...


def model_specs_from_settings(settings: Settings, asr_model: str | None = None) -> list[ModelSpec]:
    alias = (asr_model or settings.default_asr_model).lower().strip()
    asr_path = settings.resolve_asr_model_path(alias)
    specs = [
        ModelSpec(
            id=f"asr:{alias}",
            label=f"Whisper {alias}",
            path=asr_path,
            repo_id=f"Systran/faster-whisper-{ASR_MODEL_ALIASES[alias]}",
            required_files=("model.bin", "config.json"),
        ),
    ]
    if settings.summarizer_backend.strip().lower() != "llama":
        return specs

    llm_path = settings.llm_model_path
    specs.append(
        ModelSpec(
            id="llm",
            label=llm_path.name,
            path=llm_path,
            repo_id=settings.llm_repo_id,
            filename=llm_path.name,
        )
    )
    return specs


class LocalModelManager:
    """Checks model files on disk and, when allowed, fetches them from the Hugging Face Hub."""

    def __init__(self, specs: Sequence[ModelSpec], *, allow_download: bool = False) -> None:
        self.specs = {spec.id: spec for spec in specs}
        self.allow_download = allow_download

    @staticmethod
    def _status(spec: ModelSpec) -> str:
        if not spec.path.exists():
            return "missing"
        if spec.filename is not None:
            if not spec.path.is_file() or spec.path.stat().st_size == 0:
                return "invalid"
            return "ok"
        if not spec.path.is_dir():
            return "invalid"
        if any(not (spec.path / name).is_file() for name in spec.required_files):
            return "invalid"
        return "ok"

    def validate(self) -> ModelValidation:
        result = ModelValidation()
        for spec in self.specs.values():
            status = self._status(spec)
            if status == "missing":
                result.missing.append(spec.id)
            elif status == "invalid":
                result.invalid.append(spec.id)
        return result

    def ensure_ready(self, on_progress: ProgressCallback | None = None) -> None:
        report = on_progress or (lambda _update: None)
        report(ModelProgress(0.0, "Checking models"))

        validation = self.validate()
        pending = validation.missing + validation.invalid
        if not pending:
            report(ModelProgress(1.0, "Models ready"))
            return
        if not self.allow_download:
            raise ModelUnavailable(
                pending,
                f"Missing or invalid models: {', '.join(pending)}. "
                "Run `notewright models ensure --download` or place them manually.",
            )

        total = len(pending)
        for index, model_id in enumerate(pending):
            spec = self.specs[model_id]
            report(ModelProgress(index / total, f"Downloading {spec.label}"))
            self._download(spec)
            report(ModelProgress((index + 1) / total, f"Downloaded {spec.label}"))

        after = self.validate()
        if not after.is_ready:
            raise ModelUnavailable(after.missing + after.invalid)

    def _download(self, spec: ModelSpec) -> None:
        try:
            from huggingface_hub import hf_hub_download, snapshot_download
        except ImportError as exc:
            raise ModelUnavailable([spec.id], "huggingface_hub is not installed.") from exc

        logger.info("Downloading %s from %s", spec.id, spec.repo_id)
        try:
            if spec.filename is not None:
                spec.path.parent.mkdir(parents=True, exist_ok=True)
                hf_hub_download(repo_id=spec.repo_id, filename=spec.filename, local_dir=str(spec.path.parent))
            else:
                spec.path.mkdir(parents=True, exist_ok=True)
                snapshot_download(repo_id=spec.repo_id, local_dir=str(spec.path))
        except Exception as exc:
            logger.error("Download failed for %s: %s", spec.id, exc)
            raise ModelUnavailable([spec.id], f"Download failed for {spec.id}: {exc}") from exc

    def remove(self, ids: Sequence[str]) -> None:
        unknown = [model_id for model_id in ids if model_id not in self.specs]
        if unknown:
            raise ValueError(f"Unknown model ids: {', '.join(unknown)}")
        for model_id in ids:
            path = self.specs[model_id].path
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
            logger.info("Removed model %s (%s)", model_id, path)
