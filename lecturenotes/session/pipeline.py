"""Per-note pipeline: editing with autosave, transcription, summary, export and playback."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional

from ..audio.playback import AudioPlaybackProvider
from ..audio.transcriber import TranscriptionProvider
from ..errors import (
    AudioFileMissingError,
    EmptyTranscriptError,
    ExportError,
    LectureNotesError,
    PlaybackError,
    SummaryError,
    TranscriptionError,
    user_message,
)
from ..notes.models import LectureNote, SummaryResult, format_medium_datetime
from ..observable import Observable
from ..study.exporter import ExportProvider
from ..study.summarizer import SummaryProvider

logger = logging.getLogger(__name__)

PersistNote = Callable[[LectureNote], Awaitable[None]]


@dataclass(frozen=True)
class PipelineState:
    """Snapshot of an open note as seen by listeners."""
    title_text: str
    transcript_text: str
    summary: Optional[SummaryResult] = None
    is_transcribing: bool = False
    is_summarizing: bool = False
    is_exporting: bool = False
    is_playing: bool = False
    error: Optional[Exception] = None

    @property
    def error_message(self) -> Optional[str]:
        return user_message(self.error) if self.error is not None else None


class LecturePipeline(Observable[PipelineState]):
    """
    Orchestrates the workflows of one open lecture note.

    Edits are applied to a working copy and written back through
    ``persist_note`` after a debounce delay. Long-running provider calls run
    in worker threads; their results are applied on the event loop. Only one
    transcription and one summary may be in flight at a time.

    Must be used from a running event loop.
    """

    def __init__(
        self,
        note: LectureNote,
        persist_note: PersistNote,
        transcriber: TranscriptionProvider,
        summarizer: SummaryProvider,
        exporter: ExportProvider,
        player: AudioPlaybackProvider,
        audio_root: str | Path,
        autosave_delay: float = 0.5,
    ):
        super().__init__()
        self._note = note
        self._persist_note = persist_note
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.exporter = exporter
        self.player = player
        self.audio_root = Path(audio_root)
        self.autosave_delay = autosave_delay

        self._title_text = note.title
        self._transcript_text = note.transcript_text or ""
        self._summary: Optional[SummaryResult] = None
        self._is_transcribing = False
        self._is_summarizing = False
        self._is_exporting = False
        self._is_playing = False
        self._error: Optional[Exception] = None

        self._autosave_task: Optional[asyncio.Task] = None
        self._closed = False

    # ==================== State ====================

    @property
    def note(self) -> LectureNote:
        return self._note

    @property
    def state(self) -> PipelineState:
        return PipelineState(
            title_text=self._title_text,
            transcript_text=self._transcript_text,
            summary=self._summary,
            is_transcribing=self._is_transcribing,
            is_summarizing=self._is_summarizing,
            is_exporting=self._is_exporting,
            is_playing=self._is_playing,
            error=self._error,
        )

    @property
    def audio_path(self) -> Path:
        return self.audio_root / self._note.audio_file_path

    @property
    def formatted_date(self) -> str:
        return format_medium_datetime(self._note.date)

    @property
    def has_pending_autosave(self) -> bool:
        return self._autosave_task is not None and not self._autosave_task.done()

    def _changed(self) -> None:
        self._notify(self.state)

    def _fail(self, error: Exception) -> None:
        self._error = error
        logger.warning(f"Note {self._note.id}: {user_message(error)}")
        self._changed()

    # ==================== Editing ====================

    def update_title(self, text: str) -> None:
        """Apply a title edit and schedule an autosave."""
        self._title_text = text
        self._note = self._note.with_title(text)
        self._schedule_autosave()
        self._changed()

    def update_transcript(self, text: str) -> None:
        """Apply a transcript edit, drop the stale summary and schedule an autosave."""
        self._transcript_text = text
        self._note = self._note.with_transcript(text)
        self._summary = None
        self._schedule_autosave()
        self._changed()

    def _schedule_autosave(self) -> None:
        if self._autosave_task is not None:
            self._autosave_task.cancel()
        self._autosave_task = asyncio.get_running_loop().create_task(self._autosave_after_delay())

    async def _autosave_after_delay(self) -> None:
        await asyncio.sleep(self.autosave_delay)
        # Detach before writing so a newer edit cannot cancel a write in progress
        self._autosave_task = None
        await self._persist_current_note()

    async def flush(self) -> None:
        """Write a pending autosave now instead of waiting for the delay."""
        if not self.has_pending_autosave:
            return
        self._autosave_task.cancel()
        self._autosave_task = None
        await self._persist_current_note()

    def close(self) -> None:
        """Cancel any pending autosave and stop playback.

        A closed pipeline never writes again, including for work already in flight.
        """
        self._closed = True
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            self._autosave_task = None
        self.stop_audio()

    async def _persist_current_note(self) -> None:
        if self._closed:
            return
        try:
            await self._persist_note(self._note)
        except Exception as e:
            logger.error(f"Failed to persist note {self._note.id}: {e}")
            self._fail(e)

    # ==================== Transcription ====================

    async def transcribe(self) -> None:
        """Replace the transcript with a fresh transcription of the recording."""
        if self._is_transcribing:
            return

        self._is_transcribing = True
        self._error = None
        self._changed()

        try:
            text = await asyncio.to_thread(self.transcriber.transcribe, self.audio_path)
            if self._closed:
                logger.info(f"Discarding transcription for closed note {self._note.id}")
                return
            self._note = self._note.with_transcript(text)
            self._transcript_text = text
            self._summary = None
            self._changed()
            logger.info(f"Transcribed note {self._note.id} ({len(text)} chars)")
            await self._persist_current_note()
        except LectureNotesError as e:
            self._fail(e)
        except Exception as e:
            logger.error(f"Transcription error: {e}", exc_info=True)
            self._fail(TranscriptionError(str(e) or None))
        finally:
            self._is_transcribing = False
            self._changed()

    # ==================== Study features ====================

    async def generate_summary(self) -> Optional[SummaryResult]:
        """Summarize the current transcript."""
        text = self._transcript_text.strip()
        if not text:
            self._fail(EmptyTranscriptError())
            return None

        if self._is_summarizing:
            return None

        self._is_summarizing = True
        self._error = None
        self._changed()

        try:
            result = await asyncio.to_thread(self.summarizer.summarize, text)
            self._summary = result
            return result
        except LectureNotesError as e:
            self._fail(e)
        except Exception as e:
            logger.error(f"Summary error: {e}", exc_info=True)
            self._fail(SummaryError())
        finally:
            self._is_summarizing = False
            self._changed()
        return None

    def share_transcript(self) -> Optional[str]:
        """Transcript text for sharing, or None if there is nothing to share."""
        text = self._transcript_text.strip()
        if not text:
            self._fail(EmptyTranscriptError())
            return None
        return text

    def share_audio(self) -> Optional[Path]:
        """Recording location for sharing, or None if the file is missing."""
        path = self.audio_path
        if not path.is_file():
            self._fail(AudioFileMissingError())
            return None
        return path

    async def export_pdf(self) -> Optional[Path]:
        """Render the transcript to a PDF and return its location."""
        text = self._transcript_text.strip()
        if not text:
            self._fail(EmptyTranscriptError())
            return None

        if self._is_exporting:
            return None

        self._is_exporting = True
        self._error = None
        self._changed()

        try:
            return await asyncio.to_thread(
                self.exporter.render_document,
                self._note.title,
                self._note.date,
                text,
            )
        except LectureNotesError as e:
            self._fail(e)
        except Exception as e:
            logger.error(f"Export error: {e}", exc_info=True)
            self._fail(ExportError())
        finally:
            self._is_exporting = False
            self._changed()
        return None

    # ==================== Playback ====================

    def toggle_playback(self) -> None:
        if self._is_playing:
            self.stop_audio()
        else:
            self._start_audio()

    def stop_audio(self) -> None:
        if self._is_playing:
            self.player.stop()
            self._is_playing = False
            self._changed()

    def _start_audio(self) -> None:
        loop = asyncio.get_running_loop()

        def on_complete() -> None:
            loop.call_soon_threadsafe(self._playback_finished)

        try:
            self.player.play(self.audio_path, on_complete)
        except Exception as e:
            logger.error(f"Playback error: {e}")
            self._fail(e if isinstance(e, PlaybackError) else PlaybackError())
            return

        self._is_playing = True
        self._changed()

    def _playback_finished(self) -> None:
        self._is_playing = False
        self._changed()
