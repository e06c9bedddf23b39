"""Application wiring and entry point for the lecture notes recorder."""

import argparse
import asyncio
import logging
import uuid
from typing import Optional

import uvicorn

from .audio.capture import AudioCaptureSession
from .audio.playback import AudioPlayer
from .audio.transcriber import WhisperTranscriber
from .config import Config, load_config
from .notes.collection import NoteCollection
from .notes.store import NoteStore
from .session.pipeline import LecturePipeline, PipelineState
from .session.recording import RecordingController
from .study.exporter import PDFExporter
from .study.summarizer import HeuristicSummarizer
from .web.api import create_app, set_app_instance

logger = logging.getLogger(__name__)


class LectureNotesApp:
    """Owns the note collection, the recorder and one pipeline per open note."""

    def __init__(self, config: Config):
        self.config = config
        self._running = False
        self._pipelines: dict[uuid.UUID, LecturePipeline] = {}

        self._init_notes()
        self._init_audio()
        self._init_study()

    def _init_notes(self) -> None:
        logger.info("Initializing note store...")
        storage = self.config.storage
        self.store = NoteStore(storage.notes_path)
        self.collection = NoteCollection(self.store, storage.audio_root)

    def _init_audio(self) -> None:
        logger.info("Initializing audio components...")
        self.capture = AudioCaptureSession(self.config.audio, self.config.storage.audio_root)
        self.transcriber = WhisperTranscriber(self.config.audio)
        self._output_device = None if self.config.audio.device == "default" else self.config.audio.device
        self.recorder = RecordingController(
            self.capture,
            self.collection,
            tick_interval=self.config.pipeline.elapsed_tick_ms / 1000,
            level_history_size=self.config.pipeline.level_history_size,
        )

    def _init_study(self) -> None:
        self.summarizer = HeuristicSummarizer(self.config.summary)
        self.exporter = PDFExporter(self.config.storage.export_root)

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Create directories and load the stored notes."""
        if self._running:
            logger.warning("Application already running")
            return

        logger.info("Starting lecture notes recorder...")
        self.config.ensure_directories()
        await self.collection.load_notes()
        self._running = True
        logger.info(f"Started with {len(self.collection.notes)} notes")

    async def stop(self) -> None:
        """Finish the recording, flush pending edits and close every pipeline."""
        if not self._running:
            return

        logger.info("Stopping lecture notes recorder...")
        self._running = False

        if self.recorder.is_recording:
            await self.recorder.stop_recording()

        for pipeline in list(self._pipelines.values()):
            await pipeline.flush()
            pipeline.close()
        self._pipelines.clear()

        logger.info("Stopped")

    # ==================== Notes ====================

    def open_note(self, note_id: uuid.UUID) -> Optional[LecturePipeline]:
        """Return the pipeline for a note, creating it on first use."""
        pipeline = self._pipelines.get(note_id)
        if pipeline is not None:
            return pipeline

        note = self.collection.get_note(note_id)
        if note is None:
            return None

        pipeline = LecturePipeline(
            note,
            persist_note=self.collection.persist,
            transcriber=self.transcriber,
            summarizer=self.summarizer,
            exporter=self.exporter,
            player=AudioPlayer(device=self._output_device),
            audio_root=self.config.storage.audio_root,
            autosave_delay=self.config.pipeline.autosave_delay_ms / 1000,
        )
        pipeline.add_listener(lambda state: self._on_pipeline_changed(note_id, state))
        self._pipelines[note_id] = pipeline
        return pipeline

    def _on_pipeline_changed(self, note_id: uuid.UUID, state: PipelineState) -> None:
        # One note plays at a time
        if not state.is_playing:
            return
        for other_id, other in list(self._pipelines.items()):
            if other_id != note_id and other.state.is_playing:
                other.stop_audio()

    async def close_note(self, note_id: uuid.UUID) -> None:
        pipeline = self._pipelines.pop(note_id, None)
        if pipeline is not None:
            await pipeline.flush()
            pipeline.close()

    async def delete_notes(self, note_ids: list[uuid.UUID]) -> None:
        for note_id in note_ids:
            pipeline = self._pipelines.pop(note_id, None)
            if pipeline is not None:
                pipeline.close()
        await self.collection.delete_notes(note_ids)

    def get_status(self) -> dict:
        """Get current status of the application."""
        return {
            "running": self._running,
            "recording": {
                "is_recording": self.recorder.is_recording,
                "elapsed": self.recorder.elapsed_time_string,
                "level": round(self.capture.level, 3),
            },
            "notes": {
                "count": len(self.collection.notes),
                "open": len(self._pipelines),
                "error": self.collection.error_message,
            },
            "storage": {
                "root": self.config.storage.root_dir,
                "notes_file": str(self.config.storage.notes_path),
            },
            "transcriber_loaded": self.transcriber.is_loaded(),
        }

    # ==================== Serving ====================

    async def serve(self, host: str, port: int) -> None:
        """Run the HTTP API until the server exits."""
        set_app_instance(self)
        app = create_app()

        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)

        await self.start()
        try:
            logger.info(f"API available at http://{host}:{port}")
            await server.serve()
        finally:
            await self.stop()
            set_app_instance(None)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Lecture notes recorder")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (default: $LECTURENOTES_CONFIG or config/settings.yaml)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Address to bind the API to",
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="API port",
    )
    parser.add_argument(
        "--list-audio",
        action="store_true",
        help="List available audio input devices",
    )
    args = parser.parse_args()

    if args.list_audio:
        print("Available audio devices:")
        for dev in AudioCaptureSession.list_devices():
            print(f"  [{dev['id']}] {dev['name']} ({dev['channels']}ch)")
        return

    config = load_config(args.config)
    config.setup_logging()

    logger.info("=" * 50)
    logger.info("Lecture notes recorder")
    logger.info("=" * 50)

    host = args.host or config.web.host
    port = args.port or config.web.port

    app = LectureNotesApp(config)
    try:
        asyncio.run(app.serve(host, port))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")


if __name__ == "__main__":
    main()
