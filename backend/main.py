from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, configure_logging

# Loads .env before reading MELODY_* variables
settings = Settings.from_env()
configure_logging(settings.log_level)

app = FastAPI(title="Melody Transcriber API")

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.websocket("/ws/{session_id}")
async def websocket_route(websocket: WebSocket, session_id: str):
    from app.api.websocket import websocket_endpoint
    await websocket_endpoint(websocket, session_id, settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
