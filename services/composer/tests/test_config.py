import pytest

from services.composer import config as config_module


def test_defaults(monkeypatch, tmp_path):
    for name in [
        "VERTICLIP_PORT",
        "VERTICLIP_MAX_CLIP_SECONDS",
        "VERTICLIP_MAX_CONCURRENT_TRANSCODES",
        "VERTICLIP_ENV",
        "VERTICLIP_CANVAS_WIDTH",
        "VERTICLIP_CANVAS_HEIGHT",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("VERTICLIP_UPLOAD_ROOT", str(tmp_path / "uploads"))

    cfg = config_module.load_config()

    assert cfg.port == 3001
    assert cfg.max_clip_seconds == 60
    assert cfg.max_concurrent_transcodes == 0
    assert (cfg.canvas_width, cfg.canvas_height) == (1080, 1920)
    assert cfg.staging_root == (tmp_path / "uploads").resolve() / ".staging"
    assert cfg.is_production is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("VERTICLIP_PORT", "8080")
    monkeypatch.setenv("VERTICLIP_ENV", "Production")
    monkeypatch.setenv("VERTICLIP_LOG_LEVEL", "debug")

    cfg = config_module.load_config()

    assert cfg.port == 8080
    assert cfg.is_production is True
    assert cfg.log_level == "DEBUG"


def test_invalid_integer_is_reported(monkeypatch):
    monkeypatch.setenv("VERTICLIP_MAX_UPLOAD_PARTS", "four")

    with pytest.raises(ValueError, match="VERTICLIP_MAX_UPLOAD_PARTS"):
        config_module.load_config()
