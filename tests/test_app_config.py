import pytest

from utils.app_config import AppConfig, cors_origins_from_env

_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_ASSISTANT_ID",
    "RUN_TIMEOUT",
    "STREAM_VISION",
    "TRANSCRIPTION_API_URL",
    "TRANSCRIPTION_API_KEY",
    "LOG_LEVEL",
    "CORS_ALLOW_ORIGINS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_missing_api_key_fails(monkeypatch):
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        AppConfig.from_env()


def test_missing_assistant_fails(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with pytest.raises(RuntimeError, match="OPENAI_ASSISTANT_ID"):
        AppConfig.from_env()


def test_defaults(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")

    config = AppConfig.from_env()

    assert config.run_timeout == 30.0
    assert config.run_poll_interval == 1.0
    assert config.transcription_poll_interval == 5.0
    assert config.transcription_timeout == 600.0
    assert config.stream_chunk_delay == 0.1
    assert config.max_attachment_bytes == 5 * 1024 * 1024
    assert config.max_attachments == 5
    assert not config.transcription_service_enabled
    assert not config.stream_vision


def test_overrides_and_clamping(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")
    monkeypatch.setenv("RUN_TIMEOUT", "90")
    monkeypatch.setenv("STREAM_VISION", "true")
    monkeypatch.setenv("TRANSCRIPTION_API_URL", "https://stt.example/v2/transcript")
    monkeypatch.setenv("TRANSCRIPTION_API_KEY", "key")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = AppConfig.from_env()

    assert config.run_timeout == 60.0
    assert config.stream_vision
    assert config.transcription_service_enabled
    assert config.log_level == "DEBUG"


def test_non_numeric_value_fails(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")
    monkeypatch.setenv("RUN_TIMEOUT", "soon")
    with pytest.raises(RuntimeError, match="RUN_TIMEOUT"):
        AppConfig.from_env()


def test_cors_origins_default_to_any(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")

    assert AppConfig.from_env().cors_allow_origins == ("*",)
    assert cors_origins_from_env() == ["*"]


def test_cors_origins_are_comma_separated(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://app.example, https://admin.example ,")

    assert AppConfig.from_env().cors_allow_origins == ("https://app.example", "https://admin.example")
    assert cors_origins_from_env() == ["https://app.example", "https://admin.example"]
