from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from notewright.vault.contract import VaultFolders

ASR_MODEL_ALIASES: dict[str, str] = {
    "small": "small",
    "medium": "medium",
    "large": "large-v3",
}

SUMMARIZER_BACKENDS = ("llama", "extractive")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".notewright")
    models_dir: Path | None = None
    temp_dir: Path | None = None
    log_dir: Path | None = None
    log_level: str = "INFO"

    vault_dir: Path | None = None
    notes_folder: str = "Meetings"
    audio_folder: str = "Meetings/_audio"
    transcripts_folder: str = "Meetings/_transcripts"
    keep_audio: bool = True
    keep_transcript: bool = True

    default_asr_model: str = "small"
    default_language: str = "auto"
    default_compute_type: str = "int8"

    summarizer_backend: str = "llama"
    llm_default_model: Path | None = None
    llm_repo_id: str = "ggml-org/gemma-3-1b-it-GGUF"
    llm_filename: str = "gemma-3-1b-it-Q4_K_M.gguf"
    llm_temperature: float = 0.2
    llm_top_p: float = 0.9
    llm_seed: int = 42
    llm_max_tokens: int = 1024
    llm_context_size: int = 4096
    llm_max_output_bytes: int = 5 * 1024 * 1024

    diarization_enabled: bool = True
    diarization_model: str = "pyannote/speaker-diarization-3.1"
    diarization_device: str = "cpu"
    hf_token: str | None = None

    allow_model_download: bool = False
    ffmpeg_path: Path | None = None

    model_config = SettingsConfigDict(env_prefix="NOTEWRIGHT_", extra="ignore")

    @model_validator(mode="after")
    def _derive_paths(self) -> "Settings":
        if "models_dir" not in self.model_fields_set or self.models_dir is None:
            self.models_dir = self.data_dir / "models"
        if "temp_dir" not in self.model_fields_set or self.temp_dir is None:
            self.temp_dir = self.data_dir / "tmp"
        if "log_dir" not in self.model_fields_set or self.log_dir is None:
            self.log_dir = self.data_dir / "logs"
        return self

    @property
    def llm_model_path(self) -> Path:
        if self.llm_default_model is not None:
            return self.llm_default_model
        return self.models_dir / "llm" / self.llm_filename

    def ensure_dirs(self) -> None:
        for path in (self.data_dir, self.models_dir, self.temp_dir, self.log_dir):
            path.mkdir(parents=True, exist_ok=True)

    def vault_folders(self) -> VaultFolders:
        return VaultFolders(
            notes_root=self.notes_folder,
            audio_root=self.audio_folder,
            transcripts_root=self.transcripts_folder,
        )

    def resolve_asr_model_path(self, model_name: str) -> Path:
        key = model_name.lower().strip()
        if key not in ASR_MODEL_ALIASES:
            allowed = ", ".join(sorted(ASR_MODEL_ALIASES))
            raise ValueError(f"Unsupported ASR model '{model_name}'. Allowed: {allowed}")
        return self.models_dir / "faster-whisper" / ASR_MODEL_ALIASES[key]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
