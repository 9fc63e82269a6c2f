from fastapi import WebSocket, WebSocketDisconnect
from typing import Any, Dict
from pydantic import BaseModel, ValidationError
from datetime import datetime, timezone
import base64
import binascii
import json
import logging

import numpy as np

from app.transcription.session_manager import get_session, create_session, end_session

logger = logging.getLogger(__name__)


class AudioEvent(BaseModel):
    type: str  # "audio_chunk", "load_lyrics", "note_detected", ...
    data: Dict[str, Any] = {}
    timestamp: str = ""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _event(event_type: str, data: Dict[str, Any]) -> AudioEvent:
    return AudioEvent(type=event_type, data=data, timestamp=_now())


def decode_audio(audio_b64: str) -> np.ndarray:
    """Decode base64 little-endian float32 PCM into samples."""
    audio_bytes = base64.b64decode(audio_b64, validate=True)
    if len(audio_bytes) % 4:
        raise ValueError("audio payload is not a whole number of float32 samples")
    return np.frombuffer(audio_bytes, dtype="<f4")


class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections[session_id] = websocket

    def disconnect(self, session_id: str):
        if session_id in self.active_connections:
            del self.active_connections[session_id]

    async def send_event(self, session_id: str, event: AudioEvent):
        if session_id in self.active_connections:
            ws = self.active_connections[session_id]
            await ws.send_json(event.model_dump())


manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket, session_id: str, settings=None):
    """WebSocket endpoint for real-time melody transcription."""
    await manager.connect(session_id, websocket)

    session = get_session(session_id)
    if not session:
        session = create_session(session_id, settings)

    await manager.send_event(session_id, _event("session_started", {
        "session_id": session_id,
        "sample_rate": session.sample_rate,
        **session.snapshot(),
    }))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                event = AudioEvent(**json.loads(raw))
            except (json.JSONDecodeError, ValidationError, TypeError) as e:
                await manager.send_event(session_id, _event("error", {"message": f"Invalid event: {e}"}))
                continue

            if event.type == "audio_chunk":
                audio_b64 = event.data.get("audio")
                if not audio_b64:
                    await manager.send_event(session_id, _event("error", {"message": "No audio data provided"}))
                    continue
                try:
                    samples = decode_audio(audio_b64)
                    sample_rate = int(event.data.get("sample_rate") or session.sample_rate)
                    if sample_rate <= 0:
                        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
                except (ValueError, TypeError, binascii.Error) as e:
                    await manager.send_event(session_id, _event("error", {"message": f"Bad audio payload: {e}"}))
                    continue

                notes = session.process_chunk(samples, sample_rate)

                for note in notes:
                    await manager.send_event(session_id, _event("note_detected", {
                        "note": note.to_dict(),
                        **session.snapshot(),
                    }))

                reading = session.transcriber.current_pitch()
                if reading is not None:
                    await manager.send_event(session_id, _event("pitch", {
                        "frequency": round(reading.frequency, 2),
                        "note": reading.note,
                        "octave": reading.octave,
                        "doremi": reading.doremi,
                    }))

            elif event.type == "load_lyrics":
                tokens = event.data.get("tokens")
                if not isinstance(tokens, list) or not all(isinstance(t, str) for t in tokens):
                    await manager.send_event(session_id, _event("error", {"message": "tokens must be a list of strings"}))
                    continue
                count = session.load_lyrics(tokens)
                await manager.send_event(session_id, _event("lyrics_loaded", {"count": count}))

            elif event.type == "set_time_signature":
                session.set_time_signature(event.data.get("numerator"), event.data.get("denominator"))
                await manager.send_event(session_id, _event("notes_updated", session.snapshot()))

            elif event.type == "clear_notes":
                session.clear_notes()
                await manager.send_event(session_id, _event("notes_updated", session.snapshot()))

            elif event.type == "stop":
                session.stop()
                await manager.send_event(session_id, _event("session_stopped", session.snapshot()))

            else:
                await manager.send_event(session_id, _event("error", {
                    "message": f"Unknown event type: {event.type}",
                    "received_type": event.type,
                }))

    except WebSocketDisconnect:
        logger.info("Session %s disconnected", session_id)
    finally:
        end_session(session_id)
        manager.disconnect(session_id)
