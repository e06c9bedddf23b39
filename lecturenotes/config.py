"""Configuration management for the lecture notes recorder."""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class AudioConfig:
    """Audio capture and transcription configuration."""
    device: str = "default"
    sample_rate: int = 44100
    channels: int = 1
    block_duration_ms: int = 20
    microphone_enabled: bool = True
    level_interval_ms: int = 50
    level_smoothing: float = 0.2
    level_floor_db: float = -60.0
    noise_gate_db: float = -50.0
    whisper_model: str = "small.en"
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    language: Optional[str] = "en"
    beam_size: int = 5


@dataclass
class StorageConfig:
    """On-disk layout of notes, recordings and exports."""
    root_dir: str = "./data"
    notes_file: str = "lectures.json"
    audio_dir: str = "audio"
    export_dir: str = "exports"

    @property
    def notes_path(self) -> Path:
        return Path(self.root_dir) / self.notes_file

    @property
    def audio_root(self) -> Path:
        return Path(self.root_dir) / self.audio_dir

    @property
    def export_root(self) -> Path:
        return Path(self.root_dir) / self.export_dir


@dataclass
class PipelineConfig:
    """Per-note pipeline behaviour."""
    autosave_delay_ms: int = 500
    elapsed_tick_ms: int = 500
    level_history_size: int = 64


@dataclass
class SummaryConfig:
    """Heuristic summarizer tuning."""
    summary_sentences: int = 3
    max_key_points: int = 5
    key_point_max_words: int = 12
    fallback_key_points: int = 3


@dataclass
class WebConfig:
    """HTTP API configuration."""
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = "./logs/lecturenotes.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Main configuration container."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}, using defaults")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls(
            audio=AudioConfig(**data.get("audio", {})),
            storage=StorageConfig(**data.get("storage", {})),
            pipeline=PipelineConfig(**data.get("pipeline", {})),
            summary=SummaryConfig(**data.get("summary", {})),
            web=WebConfig(**data.get("web", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "audio": asdict(self.audio),
            "storage": asdict(self.storage),
            "pipeline": asdict(self.pipeline),
            "summary": asdict(self.summary),
            "web": asdict(self.web),
            "logging": asdict(self.logging),
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        log_level = getattr(logging, self.logging.level.upper(), logging.INFO)

        handlers = [logging.StreamHandler()]

        if self.logging.file:
            log_path = Path(self.logging.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path))

        logging.basicConfig(
            level=log_level,
            format=self.logging.format,
            handlers=handlers,
        )

    def ensure_directories(self) -> None:
        """Create necessary directories."""
        Path(self.storage.root_dir).mkdir(parents=True, exist_ok=True)
        self.storage.audio_root.mkdir(parents=True, exist_ok=True)
        self.storage.export_root.mkdir(parents=True, exist_ok=True)


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from file or environment."""
    if path is None:
        path = os.environ.get("LECTURENOTES_CONFIG", "config/settings.yaml")
    return Config.from_yaml(path)
