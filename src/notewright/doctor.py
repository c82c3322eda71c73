from __future__ import annotations

import importlib.util
from dataclasses import dataclass

from notewright.audio.ffmpeg import get_ffmpeg_version, project_ffmpeg_candidates, resolve_ffmpeg_command
from notewright.config import Settings
from notewright.errors import DestinationUnavailable
from notewright.models.manager import LocalModelManager, model_specs_from_settings
from notewright.vault.access import VaultAccess


@dataclass(slots=True)
class DoctorCheck:
    name: str
    status: str
    detail: str


def _detect_compute_mode() -> tuple[str, str]:
    try:
        import ctranslate2  # type: ignore

        count = int(getattr(ctranslate2, "get_cuda_device_count", lambda: 0)())
        if count > 0:
            return "ok", f"GPU available (CUDA devices: {count}); auto mode can use CUDA."
        return "warn", "No CUDA device detected; CPU mode will be used."
    except Exception as exc:  # pragma: no cover - hardware and package dependent
        return "warn", f"CTranslate2 GPU check unavailable ({exc!s}); CPU fallback expected."


def _check_ffmpeg(settings: Settings) -> DoctorCheck:
    if settings.ffmpeg_path is not None and not settings.ffmpeg_path.exists():
        return DoctorCheck(
            "ffmpeg",
            "fail",
            f"Configured NOTEWRIGHT_FFMPEG_PATH does not exist: {settings.ffmpeg_path}",
        )

    version = get_ffmpeg_version(settings.ffmpeg_path)
    if version:
        return DoctorCheck("ffmpeg", "ok", version)

    local_candidates = ", ".join(str(path) for path in project_ffmpeg_candidates())
    command = resolve_ffmpeg_command(settings.ffmpeg_path)
    return DoctorCheck(
        "ffmpeg",
        "fail",
        "ffmpeg not found. "
        f"Tried command '{command}'. "
        f"Install ffmpeg on PATH, place it in the project (candidates: {local_candidates}), "
        "or set NOTEWRIGHT_FFMPEG_PATH.",
    )


def _check_vault(settings: Settings) -> DoctorCheck:
    if settings.vault_dir is None:
        return DoctorCheck("Vault", "warn", "No NOTEWRIGHT_VAULT_DIR set; pass --vault when processing.")
    try:
        root = VaultAccess(settings.vault_dir).resolve_root()
    except DestinationUnavailable as exc:
        return DoctorCheck("Vault", "fail", exc.debug_summary)
    return DoctorCheck("Vault", "ok", f"Writable: {root}")


def _check_models(settings: Settings) -> list[DoctorCheck]:
    specs = model_specs_from_settings(settings)
    validation = LocalModelManager(specs).validate()
    checks: list[DoctorCheck] = []
    for spec in specs:
        if spec.id in validation.missing:
            checks.append(
                DoctorCheck(
                    f"Model ({spec.id})",
                    "warn",
                    f"Missing: {spec.path} (run `notewright models ensure --download`).",
                )
            )
        elif spec.id in validation.invalid:
            checks.append(DoctorCheck(f"Model ({spec.id})", "fail", f"Incomplete or empty: {spec.path}"))
        else:
            checks.append(DoctorCheck(f"Model ({spec.id})", "ok", f"Found: {spec.path}"))
    return checks


def _check_optional_engine(name: str, module: str, extra: str, *, required: bool) -> DoctorCheck:
    try:
        found = importlib.util.find_spec(module) is not None
    except ModuleNotFoundError:
        # A dotted name imports its parent package first.
        found = False
    if found:
        return DoctorCheck(name, "ok", f"{module} importable")
    return DoctorCheck(
        name,
        "fail" if required else "warn",
        f"{module} is not installed. Install with: pip install -e .[{extra}]",
    )


def run_doctor(settings: Settings) -> list[DoctorCheck]:
    checks: list[DoctorCheck] = [_check_ffmpeg(settings)]

    compute_status, compute_detail = _detect_compute_mode()
    checks.append(DoctorCheck("Compute mode", compute_status, compute_detail))
    checks.append(_check_vault(settings))
    checks.extend(_check_models(settings))
    checks.append(
        _check_optional_engine(
            "Summarizer engine",
            "llama_cpp",
            "llm",
            required=settings.summarizer_backend.strip().lower() == "llama",
        )
    )
    checks.append(
        _check_optional_engine(
            "Diarization engine",
            "pyannote.audio",
            "diarization",
            required=False,
        )
    )
    return checks
