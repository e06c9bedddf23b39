"""Speech-to-text transcription of finished recordings using faster-whisper."""

import logging
import threading
from pathlib import Path
from typing import Optional, Protocol

from faster_whisper import WhisperModel

from ..config import AudioConfig
from ..errors import (
    EmptyTranscriptionError,
    RecognizerUnavailableError,
    SpeechPermissionDeniedError,
    TranscriptionError,
)

logger = logging.getLogger(__name__)


class TranscriptionProvider(Protocol):
    """Converts a finished recording into text."""

    def transcribe(self, audio_path: Path) -> str:
        ...


class WhisperTranscriber:
    """Transcribes whole audio files with a lazily loaded Whisper model."""

    def __init__(self, config: AudioConfig):
        self.config = config
        self.model_name = config.whisper_model
        self.device = config.whisper_device
        self.compute_type = config.whisper_compute_type
        self.language = config.language
        self.beam_size = config.beam_size

        self._model: Optional[WhisperModel] = None
        self._model_lock = threading.Lock()

    def _load_model(self) -> WhisperModel:
        """Load the Whisper model on first use."""
        with self._model_lock:
            if self._model is None:
                logger.info(f"Loading Whisper model: {self.model_name} on {self.device}")
                try:
                    self._model = WhisperModel(
                        self.model_name,
                        device=self.device,
                        compute_type=self.compute_type,
                    )
                except Exception as e:
                    logger.error(f"Failed to load Whisper model: {e}")
                    raise RecognizerUnavailableError() from e
                logger.info("Whisper model loaded")
            return self._model

    def transcribe(self, audio_path: Path) -> str:
        """
        Transcribe an audio file.

        Args:
            audio_path: Location of the recording

        Returns:
            The full transcript text

        Raises:
            SpeechPermissionDeniedError: If the file cannot be read
            RecognizerUnavailableError: If the model cannot be loaded
            EmptyTranscriptionError: If no speech was recognized
            TranscriptionError: For any other recognizer failure
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise TranscriptionError(f"Recording not found: {audio_path.name}")

        model = self._load_model()

        try:
            segments, info = model.transcribe(
                str(audio_path),
                beam_size=self.beam_size,
                language=self.language,
                vad_filter=True,
            )
            texts = [seg.text.strip() for seg in segments]
        except PermissionError as e:
            raise SpeechPermissionDeniedError() from e
        except Exception as e:
            logger.error(f"Transcription error: {e}")
            raise TranscriptionError(f"Transcription failed: {e}") from e

        full_text = " ".join(text for text in texts if text)
        if not full_text:
            raise EmptyTranscriptionError()

        logger.info(f"Transcribed {audio_path.name}: '{full_text[:50]}...'")
        return full_text

    def is_loaded(self) -> bool:
        """Check if the model has been loaded."""
        return self._model is not None
