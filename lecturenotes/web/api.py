"""FastAPI JSON API over the note collection, recorder and note pipelines."""

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from pydantic import BaseModel

from ..notes.collection import filter_notes
from ..notes.models import LectureNote
from ..session.pipeline import LecturePipeline, PipelineState
from ..session.recording import RecordingState, format_elapsed

logger = logging.getLogger(__name__)

# Will be set by main.py
_app_instance = None


class ActionResponse(BaseModel):
    """Response model for note and recorder actions."""
    success: bool
    message: str
    data: Optional[dict] = None


class StatusResponse(BaseModel):
    """Response model for application status."""
    running: bool
    uptime_seconds: float
    recording: dict
    notes: dict
    storage: dict


class StartRecordingRequest(BaseModel):
    noise_reduction: bool = False


class UpdateNoteRequest(BaseModel):
    title: Optional[str] = None
    transcript: Optional[str] = None


class DeleteNotesRequest(BaseModel):
    ids: list[uuid.UUID]


def set_app_instance(instance) -> None:
    """Set the application instance for API access."""
    global _app_instance
    _app_instance = instance


def note_to_json(note: LectureNote) -> dict[str, Any]:
    return note.to_dict()


def pipeline_to_json(pipeline: LecturePipeline) -> dict[str, Any]:
    state: PipelineState = pipeline.state
    summary = None
    if state.summary is not None:
        summary = {"summary": state.summary.summary, "keyPoints": list(state.summary.key_points)}

    return {
        "note": note_to_json(pipeline.note),
        "formattedDate": pipeline.formatted_date,
        "titleText": state.title_text,
        "transcriptText": state.transcript_text,
        "summary": summary,
        "isTranscribing": state.is_transcribing,
        "isSummarizing": state.is_summarizing,
        "isExporting": state.is_exporting,
        "isPlaying": state.is_playing,
        "errorMessage": state.error_message,
    }


def recording_to_json(state: RecordingState) -> dict[str, Any]:
    return {
        "isRecording": state.is_recording,
        "elapsed": format_elapsed(state.elapsed_time),
        "level": round(state.level, 3),
        "levelHistory": [round(level, 3) for level in state.level_history],
        "errorMessage": state.error_message,
    }


def _require_app():
    if _app_instance is None:
        raise HTTPException(status_code=503, detail="Application not initialized")
    return _app_instance


def _require_pipeline(note_id: uuid.UUID) -> LecturePipeline:
    pipeline = _require_app().open_note(note_id)
    if pipeline is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return pipeline


def _failure(pipeline: LecturePipeline) -> ActionResponse:
    return ActionResponse(
        success=False,
        message=pipeline.state.error_message or "Action failed",
        data=pipeline_to_json(pipeline),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Lecture Notes API",
        description="Record, transcribe, summarize and export lectures",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store start time for uptime calculation
    app.state.start_time = datetime.now()

    # ==================== Status ====================

    @app.get("/api/status", response_model=StatusResponse)
    async def get_status():
        """Get current application status."""
        status = _require_app().get_status()
        uptime = (datetime.now() - app.state.start_time).total_seconds()

        return StatusResponse(
            running=status["running"],
            uptime_seconds=uptime,
            recording=status["recording"],
            notes=status["notes"],
            storage=status["storage"],
        )

    # ==================== Collection ====================

    @app.get("/api/notes")
    async def list_notes(query: str = "", with_transcript: bool = False):
        """List notes matching a title search and transcript filter."""
        collection = _require_app().collection
        notes = filter_notes(collection.notes, query, with_transcript)

        return {
            "success": True,
            "data": [note_to_json(note) for note in notes],
            "message": collection.error_message,
        }

    @app.delete("/api/notes", response_model=ActionResponse)
    async def delete_notes(request: DeleteNotesRequest):
        """Delete notes and their recordings."""
        instance = _require_app()
        await instance.delete_notes(request.ids)

        error = instance.collection.error_message
        return ActionResponse(
            success=error is None,
            message=error or f"Deleted {len(request.ids)} notes",
            data={"remaining": len(instance.collection.notes)},
        )

    # ==================== Recording ====================

    @app.get("/api/recording", response_model=ActionResponse)
    async def get_recording():
        """Get recorder state."""
        state = _require_app().recorder.state
        return ActionResponse(success=True, message="Recorder state", data=recording_to_json(state))

    @app.post("/api/recording/start", response_model=ActionResponse)
    async def start_recording(request: StartRecordingRequest):
        """Start a new recording."""
        recorder = _require_app().recorder
        started = await recorder.start_recording(request.noise_reduction)
        state = recorder.state

        return ActionResponse(
            success=started,
            message="Recording started" if started else state.error_message or "Failed to start recording",
            data=recording_to_json(state),
        )

    @app.post("/api/recording/stop", response_model=ActionResponse)
    async def stop_recording():
        """Stop the recording and create a note for it."""
        recorder = _require_app().recorder
        note = await recorder.stop_recording()

        if note is None:
            return ActionResponse(
                success=False,
                message=recorder.state.error_message or "No active recording to stop.",
                data=recording_to_json(recorder.state),
            )

        recorder.clear_completed_note()
        return ActionResponse(success=True, message="Recording saved", data=note_to_json(note))

    # ==================== Single note ====================

    @app.get("/api/notes/{note_id}", response_model=ActionResponse)
    async def get_note(note_id: uuid.UUID):
        """Get the working state of a note."""
        pipeline = _require_pipeline(note_id)
        return ActionResponse(success=True, message="Note", data=pipeline_to_json(pipeline))

    @app.patch("/api/notes/{note_id}", response_model=ActionResponse)
    async def update_note(note_id: uuid.UUID, request: UpdateNoteRequest):
        """Edit a note's title and/or transcript; changes autosave."""
        pipeline = _require_pipeline(note_id)
        if request.title is not None:
            pipeline.update_title(request.title)
        if request.transcript is not None:
            pipeline.update_transcript(request.transcript)

        return ActionResponse(success=True, message="Note updated", data=pipeline_to_json(pipeline))

    @app.post("/api/notes/{note_id}/transcribe", response_model=ActionResponse)
    async def transcribe_note(note_id: uuid.UUID):
        """Transcribe the note's recording."""
        pipeline = _require_pipeline(note_id)
        if pipeline.state.is_transcribing:
            return ActionResponse(success=True, message="Transcription already running", data=pipeline_to_json(pipeline))

        await pipeline.transcribe()
        if pipeline.state.error is not None:
            return _failure(pipeline)
        return ActionResponse(success=True, message="Transcription complete", data=pipeline_to_json(pipeline))

    @app.post("/api/notes/{note_id}/summary", response_model=ActionResponse)
    async def summarize_note(note_id: uuid.UUID):
        """Generate a study summary from the transcript."""
        pipeline = _require_pipeline(note_id)
        if pipeline.state.is_summarizing:
            return ActionResponse(success=True, message="Summary already running", data=pipeline_to_json(pipeline))

        result = await pipeline.generate_summary()
        if result is None:
            return _failure(pipeline)
        return ActionResponse(success=True, message="Summary generated", data=pipeline_to_json(pipeline))

    @app.get("/api/notes/{note_id}/share/transcript")
    async def share_transcript(note_id: uuid.UUID):
        """Get the transcript as plain text."""
        pipeline = _require_pipeline(note_id)
        text = pipeline.share_transcript()
        if text is None:
            return _failure(pipeline)
        return PlainTextResponse(text)

    @app.get("/api/notes/{note_id}/share/audio")
    async def share_audio(note_id: uuid.UUID):
        """Download the note's recording."""
        pipeline = _require_pipeline(note_id)
        path = pipeline.share_audio()
        if path is None:
            return _failure(pipeline)
        return FileResponse(path, media_type="audio/wav", filename=path.name)

    @app.post("/api/notes/{note_id}/export/pdf")
    async def export_pdf(note_id: uuid.UUID):
        """Render the transcript to PDF."""
        pipeline = _require_pipeline(note_id)
        path = await pipeline.export_pdf()
        if path is None:
            return _failure(pipeline)
        return FileResponse(path, media_type="application/pdf", filename=path.name)

    @app.post("/api/notes/{note_id}/playback", response_model=ActionResponse)
    async def toggle_playback(note_id: uuid.UUID):
        """Start or stop playback of the recording."""
        pipeline = _require_pipeline(note_id)
        was_playing = pipeline.state.is_playing
        pipeline.toggle_playback()

        state = pipeline.state
        if not was_playing and not state.is_playing:
            return _failure(pipeline)
        return ActionResponse(
            success=True,
            message="Playing" if state.is_playing else "Stopped",
            data=pipeline_to_json(pipeline),
        )

    return app
