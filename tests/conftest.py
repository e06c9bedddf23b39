"""Pytest configuration and shared fixtures."""

import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest


# ==================== Path Fixtures ====================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def audio_root(temp_dir):
    """Create the audio root directory."""
    root = temp_dir / "audio"
    root.mkdir()
    return root


@pytest.fixture
def temp_config_file(temp_dir):
    """Create a temporary config file."""
    config_path = temp_dir / "settings.yaml"
    config_content = """
audio:
  device: "default"
  sample_rate: 16000
  channels: 1
  whisper_model: "tiny"
  whisper_device: "cpu"

storage:
  root_dir: "{root_dir}"

pipeline:
  autosave_delay_ms: 100

logging:
  level: "DEBUG"
  file: null
""".format(root_dir=str(temp_dir / "data"))

    config_path.write_text(config_content)
    return config_path


# ==================== Audio Fixtures ====================

@pytest.fixture
def mock_audio_config():
    """Create an audio config for tests."""
    from lecturenotes.config import AudioConfig
    return AudioConfig(
        device="default",
        sample_rate=16000,
        channels=1,
        block_duration_ms=20,
        level_interval_ms=10,
        whisper_model="tiny",
        whisper_device="cpu",
        whisper_compute_type="float32",
    )


@pytest.fixture
def loud_block():
    """A block of full-scale noise."""
    return (np.random.uniform(-1.0, 1.0, (320, 1))).astype(np.float32)


@pytest.fixture
def silent_block():
    """A block of silence."""
    return np.zeros((320, 1), dtype=np.float32)


# ==================== Note Fixtures ====================

@pytest.fixture
def make_note():
    """Factory for lecture notes."""
    from lecturenotes.notes.models import LectureNote

    def _make(
        title="Lecture",
        hours_ago=0,
        transcript=None,
        audio="Recording.wav",
    ):
        return LectureNote(
            id=uuid.uuid4(),
            title=title,
            date=datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc) - timedelta(hours=hours_ago),
            audio_file_path=audio,
            transcript_text=transcript,
        )

    return _make


@pytest.fixture
def sample_notes(make_note):
    """Three notes, newest first."""
    return [
        make_note("Linear Algebra", hours_ago=1, transcript="Vectors and matrices.", audio="a.wav"),
        make_note("Organic Chemistry", hours_ago=5, transcript=None, audio="b.wav"),
        make_note("Linear Regression", hours_ago=30, transcript="Least squares.", audio="c.wav"),
    ]


@pytest.fixture
def note_store(temp_dir):
    """Create a NoteStore in the temp directory."""
    from lecturenotes.notes.store import NoteStore
    return NoteStore(temp_dir / "lectures.json")


# ==================== Provider Fixtures ====================

@pytest.fixture
def mock_transcriber():
    """Create a mock transcription provider."""
    mock = MagicMock()
    mock.transcribe.return_value = "Today we cover entropy. It always increases."
    return mock


@pytest.fixture
def mock_summarizer():
    """Create a mock summary provider."""
    from lecturenotes.notes.models import SummaryResult
    mock = MagicMock()
    mock.summarize.return_value = SummaryResult(summary="Entropy.", key_points=["It increases"])
    return mock


@pytest.fixture
def mock_exporter(temp_dir):
    """Create a mock export provider."""
    mock = MagicMock()
    mock.render_document.return_value = temp_dir / "Lecture-Export.pdf"
    return mock


@pytest.fixture
def mock_player():
    """Create a mock playback provider."""
    return MagicMock()


@pytest.fixture
def mock_whisper_model():
    """Create a mock Whisper model."""
    mock_model = MagicMock()
    mock_segment = MagicMock()
    mock_segment.text = " Test transcription "
    mock_segment.avg_logprob = -0.5
    mock_model.transcribe.return_value = ([mock_segment], MagicMock())
    return mock_model
