from __future__ import annotations

from pathlib import Path

import pytest

from btmanage.core.config import Settings, config_path, load_settings
from btmanage.core.errors import ConfigError


def _write_config(root: Path, content: str) -> Path:
    path = root / "bt-manage" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    root = tmp_path / "cfg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(root))
    return root


def test_config_path_follows_xdg(xdg: Path) -> None:
    assert config_path() == xdg / "bt-manage" / "config.yaml"


def test_missing_file_uses_defaults(xdg: Path) -> None:
    loaded = load_settings()
    assert loaded.settings == Settings()
    assert loaded.source is None
    assert loaded.warnings == ()


def test_empty_file_uses_defaults(xdg: Path) -> None:
    path = _write_config(xdg, "")
    loaded = load_settings()
    assert loaded.settings == Settings()
    assert loaded.source == path


def test_overrides_are_applied(xdg: Path) -> None:
    _write_config(
        xdg,
        """
blueutil_path: /opt/homebrew/bin/blueutil
action_timeout_s: 4
pairing_timeout_s: 90.5
inquiry_s: 20
wait_connect_s: 0
max_attempts: 2
""",
    )
    settings = load_settings().settings
    assert settings.blueutil_path == "/opt/homebrew/bin/blueutil"
    assert settings.action_timeout_s == 4.0
    assert settings.pairing_timeout_s == 90.5
    assert settings.inquiry_s == 20
    assert settings.wait_connect_s == 0
    assert settings.max_attempts == 2


def test_unknown_key_rejected(xdg: Path) -> None:
    _write_config(xdg, "backend: bluez\n")
    with pytest.raises(ConfigError, match="Schema validation failed"):
        load_settings()


@pytest.mark.parametrize("content", ["max_attempts: 0\n", "action_timeout_s: 0\n", "inquiry_s: fast\n"])
def test_out_of_range_values_rejected(xdg: Path, content: str) -> None:
    _write_config(xdg, content)
    with pytest.raises(ConfigError):
        load_settings()


def test_duplicate_key_rejected(xdg: Path) -> None:
    _write_config(xdg, "inquiry_s: 10\ninquiry_s: 20\n")
    with pytest.raises(ConfigError, match="Duplicate key 'inquiry_s'"):
        load_settings()


def test_invalid_yaml_rejected(xdg: Path) -> None:
    _write_config(xdg, "inquiry_s: [1,\n")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_settings()


def test_non_mapping_root_rejected(xdg: Path) -> None:
    _write_config(xdg, "- blueutil\n")
    with pytest.raises(ConfigError, match="mapping at root"):
        load_settings()


def test_unexpected_binary_name_warns(xdg: Path) -> None:
    _write_config(xdg, "blueutil_path: /usr/local/bin/bt\n")
    loaded = load_settings()
    assert loaded.settings.blueutil_path == "/usr/local/bin/bt"
    assert len(loaded.warnings) == 1
    assert "does not look like a blueutil binary" in loaded.warnings[0]


def test_explicit_path_wins(xdg: Path, tmp_path: Path) -> None:
    explicit = tmp_path / "other.yaml"
    explicit.write_text("max_attempts: 9\n", encoding="utf-8")
    assert load_settings(explicit).settings.max_attempts == 9
