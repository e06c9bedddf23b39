"""Audio components for recording, transcribing and playing back lectures."""

from .capture import AudioCaptureSession, LevelMeter
from .playback import AudioPlayer
from .transcriber import WhisperTranscriber

__all__ = ["AudioCaptureSession", "LevelMeter", "AudioPlayer", "WhisperTranscriber"]
