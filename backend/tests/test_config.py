import sys
import os
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import Settings, configure_logging


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})
    assert settings.sample_rate == 44100
    assert settings.frame_size == 2048
    assert settings.hop_size == 2048
    assert settings.log_level == "INFO"
    assert settings.cors_origins == ["http://localhost:3000"]


def test_values_from_environment():
    settings = Settings.from_env({
        "MELODY_SAMPLE_RATE": "48000",
        "MELODY_FRAME_SIZE": "1024",
        "MELODY_HOP_SIZE": "512",
        "MELODY_LOG_LEVEL": "debug",
        "MELODY_CORS_ORIGINS": "http://a.test, http://b.test,",
    })
    assert settings.sample_rate == 48000
    assert settings.frame_size == 1024
    assert settings.hop_size == 512
    assert settings.log_level == "DEBUG"
    assert settings.cors_origins == ["http://a.test", "http://b.test"]


def test_hop_defaults_to_frame_size():
    settings = Settings.from_env({"MELODY_FRAME_SIZE": "4096"})
    assert settings.hop_size == 4096


def test_invalid_numbers_fall_back(caplog):
    with caplog.at_level(logging.WARNING):
        settings = Settings.from_env({"MELODY_SAMPLE_RATE": "fast", "MELODY_FRAME_SIZE": "-5"})
    assert settings.sample_rate == 44100
    assert settings.frame_size == 2048
    assert "MELODY_SAMPLE_RATE" in caplog.text


def test_hop_larger_than_frame_is_clamped():
    settings = Settings.from_env({"MELODY_FRAME_SIZE": "1024", "MELODY_HOP_SIZE": "4096"})
    assert settings.hop_size == 1024


def test_configure_logging_quiets_access_log():
    configure_logging("DEBUG")
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
