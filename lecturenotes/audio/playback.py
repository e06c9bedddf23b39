"""Playback of recorded lectures."""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Protocol

import numpy as np
import sounddevice as sd
import soundfile as sf

from ..errors import PlaybackError

logger = logging.getLogger(__name__)


class AudioPlaybackProvider(Protocol):
    def play(self, audio_path: Path, on_complete: Callable[[], None]) -> None:
        ...

    def stop(self) -> None:
        ...

    def is_playing(self) -> bool:
        ...


class AudioPlayer:
    """Streams an audio file to the default output device.

    ``on_complete`` is called from the audio thread when the file has been
    played to the end. It is not called after :meth:`stop`.
    """

    def __init__(self, device: Optional[str] = None, block_size: int = 2048):
        self.device = device
        self.block_size = block_size

        self._file: Optional[sf.SoundFile] = None
        self._stream: Optional[sd.OutputStream] = None
        self._on_complete: Optional[Callable[[], None]] = None
        self._stopped = False
        self._lock = threading.Lock()

    def play(self, audio_path: Path, on_complete: Callable[[], None]) -> None:
        """
        Start playing ``audio_path``, replacing any current playback.

        Raises:
            PlaybackError: If the file cannot be opened or the device fails
        """
        self.stop()

        with self._lock:
            try:
                self._file = sf.SoundFile(str(audio_path), mode="r")
                self._stream = sd.OutputStream(
                    device=self.device,
                    samplerate=self._file.samplerate,
                    channels=self._file.channels,
                    dtype="float32",
                    blocksize=self.block_size,
                    callback=self._audio_callback,
                    finished_callback=self._finished,
                )
                self._on_complete = on_complete
                self._stopped = False
                self._stream.start()
            except (sd.PortAudioError, sf.LibsndfileError, OSError, RuntimeError) as e:
                logger.error(f"Unable to play {audio_path}: {e}")
                self._release()
                raise PlaybackError() from e

        logger.info(f"Playing {Path(audio_path).name}")

    def stop(self) -> None:
        """Stop playback without firing the completion callback."""
        with self._lock:
            if self._stream is None:
                return
            self._stopped = True
            try:
                self._stream.stop()
            except sd.PortAudioError as e:
                logger.warning(f"Error stopping playback: {e}")
            self._release()

    def is_playing(self) -> bool:
        return self._stream is not None and not self._stopped

    def _audio_callback(self, outdata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            logger.warning(f"Playback status: {status}")

        data = self._file.read(frames, dtype="float32", always_2d=True)
        count = len(data)
        outdata[:count] = data
        if count < frames:
            outdata[count:] = 0
            raise sd.CallbackStop()

    def _finished(self) -> None:
        if self._stopped:
            return
        stream = self._stream
        threading.Thread(target=self._complete, args=(stream,), daemon=True).start()

    def _complete(self, stream: Optional[sd.OutputStream]) -> None:
        with self._lock:
            if stream is None or stream is not self._stream:
                return
            callback = self._on_complete
            self._release()
        if callback is not None:
            try:
                callback()
            except Exception as e:
                logger.error(f"Playback completion callback error: {e}")

    def _release(self) -> None:
        if self._stream is not None:
            try:
                self._stream.close()
            except sd.PortAudioError as e:
                logger.warning(f"Error closing playback stream: {e}")
            self._stream = None
        if self._file is not None:
            self._file.close()
            self._file = None
        self._on_complete = None
