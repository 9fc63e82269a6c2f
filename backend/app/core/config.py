"""
Service settings read from the environment (and a local .env file).

Variables:
    MELODY_SAMPLE_RATE   default sample rate of streamed audio (44100)
    MELODY_FRAME_SIZE    analysis frame length in samples (2048)
    MELODY_HOP_SIZE      samples between frame starts (= frame size)
    MELODY_LOG_LEVEL     logging level name (INFO)
    MELODY_CORS_ORIGINS  comma-separated allowed origins (http://localhost:3000)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer), using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r (must be positive), using %d", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    sample_rate: int = 44100
    frame_size: int = 2048
    hop_size: int = 2048
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from `env` (os.environ after loading .env by default)."""
        if env is None:
            load_dotenv()
            env = os.environ

        frame_size = _env_int(env, "MELODY_FRAME_SIZE", 2048)
        hop_size = _env_int(env, "MELODY_HOP_SIZE", frame_size)
        if hop_size > frame_size:
            logger.warning("MELODY_HOP_SIZE %d exceeds frame size, using %d", hop_size, frame_size)
            hop_size = frame_size

        origins = env.get("MELODY_CORS_ORIGINS", "http://localhost:3000")
        return cls(
            sample_rate=_env_int(env, "MELODY_SAMPLE_RATE", 44100),
            frame_size=frame_size,
            hop_size=hop_size,
            log_level=env.get("MELODY_LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup shared by the API server and the CLI."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # Third-party loggers are noisy at DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
