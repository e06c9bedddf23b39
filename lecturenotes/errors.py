"""Error types shared by the recorder, pipeline and note store.

Every error carries a user-facing ``message`` that controllers copy into their
state's error field; callers retry by re-invoking the same operation.
"""


class LectureNotesError(Exception):
    """Base class for all application errors."""

    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ==================== Recording ====================

class RecorderError(LectureNotesError):
    default_message = "Failed to start recording."


class PermissionDeniedError(RecorderError):
    default_message = "Microphone permission is required to record."


class ConfigurationFailedError(RecorderError):
    default_message = "Unable to configure the audio session."


class AlreadyRecordingError(RecorderError):
    default_message = "Recording is already in progress."


class NotRecordingError(RecorderError):
    default_message = "No active recording to stop."


class RecordingInterruptedError(RecorderError):
    default_message = "Recording was interrupted."


# ==================== Transcription ====================

class TranscriptionError(LectureNotesError):
    default_message = "Transcription failed."


class SpeechPermissionDeniedError(TranscriptionError):
    default_message = "Speech recognition permission is required."


class RecognizerUnavailableError(TranscriptionError):
    default_message = "Speech recognizer is currently unavailable."


class EmptyTranscriptionError(TranscriptionError):
    default_message = "No transcription result was produced."


# ==================== Preconditions ====================

class PreconditionError(LectureNotesError):
    default_message = "This action is not available right now."


class EmptyTranscriptError(PreconditionError):
    default_message = "Transcript is empty."


class AudioFileMissingError(PreconditionError):
    default_message = "Audio file is missing."


# ==================== Study features and storage ====================

class SummaryError(LectureNotesError):
    default_message = "Unable to generate a summary."


class ExportError(LectureNotesError):
    default_message = "Unable to export the transcript."


class PlaybackError(LectureNotesError):
    default_message = "Unable to play audio."


class StoreError(LectureNotesError):
    default_message = "Unable to access the note store."


def user_message(error: BaseException) -> str:
    """Return the text to show for ``error``."""
    if isinstance(error, LectureNotesError):
        return error.message
    return str(error) or type(error).__name__
