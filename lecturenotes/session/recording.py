"""Recording controller: drives a capture session and files the result as a note."""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Optional

from ..audio.capture import AudioCaptureSession
from ..errors import RecordingInterruptedError, user_message
from ..notes.collection import NoteCollection
from ..notes.models import LectureNote
from ..observable import Observable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordingState:
    """Snapshot of the recorder as seen by listeners."""
    is_recording: bool = False
    elapsed_time: float = 0.0
    level: float = 0.0
    level_history: tuple[float, ...] = ()
    error_message: Optional[str] = None
    completed_note: Optional[LectureNote] = None


def format_elapsed(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


class RecordingController(Observable[RecordingState]):
    """
    Starts and stops recordings and creates a note for each finished one.

    Level samples and interruptions arrive on capture threads and are handed
    to the event loop before any state changes. Must be used from a running
    event loop.
    """

    def __init__(
        self,
        capture: AudioCaptureSession,
        collection: NoteCollection,
        tick_interval: float = 0.5,
        level_history_size: int = 64,
    ):
        super().__init__()
        self.capture = capture
        self.collection = collection
        self.tick_interval = tick_interval

        self._is_recording = False
        self._elapsed_time = 0.0
        self._level = 0.0
        self._level_history: deque[float] = deque(maxlen=level_history_size)
        self._error_message: Optional[str] = None
        self._completed_note: Optional[LectureNote] = None

        self._started_at: Optional[float] = None
        self._ticker: Optional[asyncio.Task] = None
        self._feedback_paused = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self.capture.add_level_callback(self._on_level_from_capture)
        self.capture.add_interruption_callback(self._on_interruption_from_capture)

    # ==================== State ====================

    @property
    def state(self) -> RecordingState:
        return RecordingState(
            is_recording=self._is_recording,
            elapsed_time=self._elapsed_time,
            level=self._level,
            level_history=tuple(self._level_history),
            error_message=self._error_message,
            completed_note=self._completed_note,
        )

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    @property
    def elapsed_time_string(self) -> str:
        return format_elapsed(self._elapsed_time)

    def _changed(self) -> None:
        self._notify(self.state)

    # ==================== Operations ====================

    async def toggle_recording(self, noise_reduction: bool = False) -> Optional[LectureNote]:
        if self._is_recording:
            return await self.stop_recording()
        await self.start_recording(noise_reduction)
        return None

    async def start_recording(self, noise_reduction: bool = False) -> bool:
        """Start capturing; returns False and reports the error on failure."""
        self._loop = asyncio.get_running_loop()
        self._error_message = None

        try:
            await asyncio.to_thread(self.capture.start, noise_reduction)
        except Exception as e:
            logger.error(f"Failed to start recording: {e}")
            self._is_recording = False
            self._stop_ticker()
            self._error_message = user_message(e)
            self._changed()
            return False

        self._is_recording = True
        self._level = 0.0
        self._level_history.clear()
        self._start_ticker()
        self._changed()
        return True

    async def stop_recording(self) -> Optional[LectureNote]:
        """Stop capturing and add the recording to the collection."""
        if not self._is_recording:
            return None

        self._is_recording = False
        self._stop_ticker()
        self._changed()

        try:
            audio_path = await asyncio.to_thread(self.capture.stop)
        except Exception as e:
            logger.error(f"Failed to stop recording: {e}")
            self._error_message = user_message(e)
            self._changed()
            return None

        try:
            note = await self.collection.add_note(audio_path)
        except Exception as e:
            logger.error(f"Failed to create note for {audio_path}: {e}")
            self._error_message = user_message(e)
            self._changed()
            return None

        self._elapsed_time = 0.0
        self._level = 0.0
        self._completed_note = note
        self._changed()
        return note

    def clear_completed_note(self) -> None:
        self._completed_note = None
        self._changed()

    def pause_feedback(self) -> None:
        """Pause level and elapsed-time updates; the recording keeps running."""
        self._feedback_paused = True
        self.capture.pause_level_updates()

    def resume_feedback(self) -> None:
        self._feedback_paused = False
        self.capture.resume_level_updates()
        if self._is_recording:
            self._update_elapsed()
            self._changed()

    # ==================== Elapsed time ====================

    def _start_ticker(self) -> None:
        self._stop_ticker()
        self._elapsed_time = 0.0
        self._started_at = time.monotonic()
        self._ticker = asyncio.get_running_loop().create_task(self._tick())

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self._started_at = None

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            if self._feedback_paused:
                continue
            self._update_elapsed()
            self._changed()

    def _update_elapsed(self) -> None:
        if self._started_at is not None:
            self._elapsed_time = time.monotonic() - self._started_at

    # ==================== Capture thread hand-off ====================

    def _on_level_from_capture(self, level: float) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._apply_level, level)

    def _on_interruption_from_capture(self, reason: str) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._apply_interruption, reason)

    def _apply_level(self, level: float) -> None:
        if not self._is_recording or self._feedback_paused:
            return
        self._level = level
        self._level_history.append(level)
        self._changed()

    def _apply_interruption(self, reason: str) -> None:
        logger.warning(f"Recording interrupted: {reason}")
        self._is_recording = False
        self._stop_ticker()
        self._elapsed_time = 0.0
        self._level = 0.0
        self._error_message = RecordingInterruptedError().message
        self._changed()
