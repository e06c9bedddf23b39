"""Microphone recording sessions with live input level."""

import logging
import math
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

from ..config import AudioConfig
from ..errors import (
    AlreadyRecordingError,
    ConfigurationFailedError,
    NotRecordingError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

SILENCE_DB = -160.0


class CaptureState(Enum):
    IDLE = "idle"
    RECORDING = "recording"


@dataclass
class RecordingSession:
    """One in-progress recording."""
    path: Path
    start_time: datetime
    noise_reduction: bool = False
    is_active: bool = True
    level: float = 0.0
    frames_written: int = 0

    @property
    def elapsed_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.start_time).total_seconds()


def block_power_db(block: np.ndarray) -> float:
    """RMS power of an audio block in dBFS."""
    if block.size == 0:
        return SILENCE_DB
    rms = float(np.sqrt(np.mean(np.square(block, dtype=np.float64))))
    if rms <= 0.0:
        return SILENCE_DB
    return max(SILENCE_DB, 20.0 * math.log10(rms))


class LevelMeter:
    """Maps dBFS power to [0, 1] and smooths it with an exponential moving average."""

    def __init__(self, floor_db: float = -60.0, smoothing: float = 0.2):
        self.floor_db = floor_db
        self.smoothing = smoothing
        self.level = 0.0

    def normalize(self, power_db: float) -> float:
        clamped = min(0.0, max(self.floor_db, power_db))
        return (clamped - self.floor_db) / abs(self.floor_db)

    def update(self, power_db: float) -> float:
        sample = self.normalize(power_db)
        self.level += self.smoothing * (sample - self.level)
        return self.level

    def reset(self) -> None:
        self.level = 0.0


class AudioCaptureSession:
    """
    Records the microphone to a WAV file.

    Audio blocks are queued from the PortAudio callback and written by a
    worker thread. A second thread samples the latest block power at a fixed
    interval and publishes a smoothed level.
    """

    def __init__(
        self,
        config: AudioConfig,
        audio_root: str | Path,
        permission_check: Optional[Callable[[], bool]] = None,
    ):
        self.config = config
        self.audio_root = Path(audio_root)
        self.sample_rate = config.sample_rate
        self.channels = config.channels
        self.block_samples = int(config.sample_rate * config.block_duration_ms / 1000)
        self.level_interval = config.level_interval_ms / 1000

        self._permission_check = permission_check or self._default_permission_check
        self._meter = LevelMeter(config.level_floor_db, config.level_smoothing)

        self._state = CaptureState.IDLE
        self._state_lock = threading.Lock()
        self._session: Optional[RecordingSession] = None
        self._stream: Optional[sd.InputStream] = None
        self._file: Optional[sf.SoundFile] = None

        self._audio_queue: queue.Queue[np.ndarray] = queue.Queue()
        self._running = False
        self._stopping = False
        self._writer_thread: Optional[threading.Thread] = None
        self._sampler_thread: Optional[threading.Thread] = None
        self._sampler_wake = threading.Event()
        self._levels_paused = False
        self._last_power_db = SILENCE_DB

        self._level_callbacks: list[Callable[[float], None]] = []
        self._interruption_callbacks: list[Callable[[str], None]] = []

    # ==================== Callbacks ====================

    def add_level_callback(self, callback: Callable[[float], None]) -> None:
        """Register a callback for smoothed level samples in [0, 1]."""
        self._level_callbacks.append(callback)

    def remove_level_callback(self, callback: Callable[[float], None]) -> None:
        if callback in self._level_callbacks:
            self._level_callbacks.remove(callback)

    def add_interruption_callback(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with a reason when a recording is interrupted."""
        self._interruption_callbacks.append(callback)

    def remove_interruption_callback(self, callback: Callable[[str], None]) -> None:
        if callback in self._interruption_callbacks:
            self._interruption_callbacks.remove(callback)

    # ==================== State ====================

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    @property
    def level(self) -> float:
        return self._meter.level

    def is_recording(self) -> bool:
        return self._state is CaptureState.RECORDING

    # ==================== Lifecycle ====================

    def start(self, noise_reduction: bool = False) -> Path:
        """
        Start recording to a new file under the audio root.

        Args:
            noise_reduction: Gate blocks quieter than the configured threshold

        Returns:
            Location of the file being recorded

        Raises:
            AlreadyRecordingError: If a recording is in progress
            PermissionDeniedError: If microphone access is not granted
            ConfigurationFailedError: If the stream or file cannot be opened
        """
        with self._state_lock:
            if self._state is not CaptureState.IDLE:
                raise AlreadyRecordingError()

            if not self.config.microphone_enabled or not self._permission_check():
                raise PermissionDeniedError()

            path = self._allocate_path()
            try:
                self._file = sf.SoundFile(
                    str(path),
                    mode="w",
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    subtype="PCM_16",
                )
                self._stream = sd.InputStream(
                    device=self._resolve_device(),
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype=np.float32,
                    blocksize=self.block_samples,
                    callback=self._audio_callback,
                    finished_callback=self._stream_finished,
                )
            except (sd.PortAudioError, sf.LibsndfileError, OSError, ValueError) as e:
                logger.error(f"Failed to configure audio capture: {e}")
                self._close_file()
                self._stream = None
                path.unlink(missing_ok=True)
                raise ConfigurationFailedError() from e

            self._session = RecordingSession(
                path=path,
                start_time=datetime.now(timezone.utc),
                noise_reduction=noise_reduction,
            )
            self._meter.reset()
            self._last_power_db = SILENCE_DB
            self._running = True
            self._stopping = False

            self._writer_thread = threading.Thread(target=self._write_loop, daemon=True)
            self._writer_thread.start()
            self._sampler_wake.clear()
            self._sampler_thread = threading.Thread(target=self._sample_loop, daemon=True)
            self._sampler_thread.start()

            try:
                self._stream.start()
            except sd.PortAudioError as e:
                logger.error(f"Failed to start audio stream: {e}")
                self._teardown(discard=True)
                raise ConfigurationFailedError() from e

            self._state = CaptureState.RECORDING

        logger.info(f"Recording started: {path.name} ({self.sample_rate}Hz, {self.channels}ch)")
        return path

    def stop(self) -> Path:
        """
        Stop recording.

        Returns:
            Location of the finished file

        Raises:
            NotRecordingError: If no recording is in progress
        """
        with self._state_lock:
            if self._state is not CaptureState.RECORDING or self._session is None:
                raise NotRecordingError()

            session = self._session
            self._teardown(discard=False)

        logger.info(f"Recording stopped: {session.path.name} ({session.frames_written} frames)")
        return session.path

    def interrupt(self, reason: str = "Audio input was interrupted") -> None:
        """
        Abandon the current recording.

        The in-progress file is deleted and listeners are told why. Does
        nothing when idle.
        """
        with self._state_lock:
            if self._state is not CaptureState.RECORDING:
                return
            self._teardown(discard=True)

        logger.warning(f"Recording interrupted: {reason}")
        for callback in list(self._interruption_callbacks):
            try:
                callback(reason)
            except Exception as e:
                logger.error(f"Interruption callback error: {e}")

    def pause_level_updates(self) -> None:
        """Stop publishing level samples without affecting the recording."""
        self._levels_paused = True

    def resume_level_updates(self) -> None:
        self._levels_paused = False

    def _teardown(self, discard: bool) -> None:
        """Close stream, threads and file. Caller holds the state lock."""
        self._stopping = True
        self._running = False

        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except sd.PortAudioError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self._stream = None

        self._sampler_wake.set()
        for thread in (self._writer_thread, self._sampler_thread):
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=2.0)
        self._writer_thread = None
        self._sampler_thread = None

        self._close_file()

        session = self._session
        if session is not None:
            session.is_active = False
            if discard:
                session.path.unlink(missing_ok=True)

        self._session = None
        self._meter.reset()
        self._state = CaptureState.IDLE

    def _close_file(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            except (sf.LibsndfileError, RuntimeError) as e:
                logger.warning(f"Error closing recording file: {e}")
            self._file = None

    # ==================== Audio threads ====================

    def _audio_callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for sounddevice stream."""
        if status:
            logger.warning(f"Audio callback status: {status}")

        self._audio_queue.put(indata.copy())

    def _stream_finished(self) -> None:
        """PortAudio finished callback; an unexpected finish is an interruption."""
        if self._stopping:
            return
        threading.Thread(
            target=self.interrupt,
            args=("Audio stream ended unexpectedly",),
            daemon=True,
        ).start()

    def _write_loop(self) -> None:
        """Drain queued blocks into the output file."""
        while self._running or not self._audio_queue.empty():
            try:
                block = self._audio_queue.get(timeout=0.1)
            except queue.Empty:
                continue

            power_db = block_power_db(block)
            self._last_power_db = power_db

            session = self._session
            if session is not None and session.noise_reduction:
                if power_db < self.config.noise_gate_db:
                    block = np.zeros_like(block)

            try:
                if self._file is not None:
                    self._file.write(block)
                    if session is not None:
                        session.frames_written += len(block)
            except (sf.LibsndfileError, RuntimeError) as e:
                logger.error(f"Failed to write audio block: {e}")

    def _sample_loop(self) -> None:
        """Publish a smoothed level every sampling interval."""
        while not self._sampler_wake.wait(self.level_interval):
            if self._levels_paused:
                continue

            level = self._meter.update(self._last_power_db)
            session = self._session
            if session is not None:
                session.level = level

            for callback in list(self._level_callbacks):
                try:
                    callback(level)
                except Exception as e:
                    logger.error(f"Level callback error: {e}")

    # ==================== Helpers ====================

    def _default_permission_check(self) -> bool:
        try:
            sd.query_devices(kind="input")
        except (sd.PortAudioError, ValueError) as e:
            logger.warning(f"No microphone available: {e}")
            return False
        return True

    def _resolve_device(self):
        if self.config.device == "default":
            return None
        try:
            return int(self.config.device)
        except ValueError:
            return self.config.device

    def _allocate_path(self) -> Path:
        """Timestamp-named file that does not collide with an existing one."""
        self.audio_root.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
        path = self.audio_root / f"Recording-{stamp}.wav"

        suffix = 1
        while path.exists():
            path = self.audio_root / f"Recording-{stamp}-{suffix}.wav"
            suffix += 1
        return path

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        devices = []
        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append({
                    "id": i,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "sample_rate": device["default_samplerate"],
                })
        return devices
