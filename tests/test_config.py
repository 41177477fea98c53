"""Tests for settings loading."""

import pytest
import yaml

from nix_installer.config import (
    DEFAULT_CHANNELS,
    ChannelSpec,
    ConfigError,
    ConfigManager,
    InstallerSettings,
)


def test_defaults_without_file(config_dir):
    settings = ConfigManager(config_dir).load()
    assert settings.channel_pairs() == DEFAULT_CHANNELS
    assert settings.force is False
    assert settings.self_test_timeout is None


def test_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("NIX_INSTALLER_CONFIG", str(tmp_path / "elsewhere"))
    mgr = ConfigManager()
    assert mgr.config_dir == (tmp_path / "elsewhere").resolve()
    assert mgr.receipt_file.name == "receipt.json"


def test_load_from_yaml(config_dir):
    (config_dir / "settings.yaml").write_text(
        yaml.safe_dump(
            {
                "channels": [
                    {"name": "nixpkgs", "url": "https://example/nixpkgs"},
                    {"name": "nixos", "url": "https://example/nixos"},
                ],
                "force": True,
                "self_test_timeout": 5,
            }
        )
    )

    settings = ConfigManager(config_dir).load()

    assert settings.channel_pairs() == [
        ("nixpkgs", "https://example/nixpkgs"),
        ("nixos", "https://example/nixos"),
    ]
    assert settings.force is True
    assert settings.self_test_timeout == 5.0


def test_url_kept_as_written():
    spec = ChannelSpec(name="bare", url="https://example.org")
    assert spec.url == "https://example.org"


def test_invalid_url_rejected(config_dir):
    (config_dir / "settings.yaml").write_text(
        yaml.safe_dump({"channels": [{"name": "x", "url": "not a url"}]})
    )
    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(config_dir).load()
    assert excinfo.value.kind == ConfigError.Kind.INVALID


def test_duplicate_names_rejected():
    with pytest.raises(ValueError, match="Duplicate channel names: a"):
        InstallerSettings(
            channels=[
                ChannelSpec(name="a", url="https://example/1"),
                ChannelSpec(name="a", url="https://example/2"),
            ]
        )


def test_not_a_mapping(config_dir):
    (config_dir / "settings.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(config_dir).load()
    assert excinfo.value.kind == ConfigError.Kind.INVALID
    assert excinfo.value.diagnostic() == f'Invalid("{config_dir / "settings.yaml"}")'


def test_unparseable_yaml(config_dir):
    (config_dir / "settings.yaml").write_text("channels: [unclosed\n")
    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(config_dir).load()
    assert excinfo.value.kind == ConfigError.Kind.READ


def test_save_then_load(tmp_path):
    mgr = ConfigManager(tmp_path / "new")
    settings = InstallerSettings(
        channels=[ChannelSpec(name="nixos", url="https://example/nixos")],
        concurrent_self_test=True,
    )
    mgr.save(settings)
    assert mgr.load() == settings


@pytest.mark.parametrize("raw", ["nixpkgs", "=https://example", "two words=https://example"])
def test_parse_channel_option_rejects(raw):
    with pytest.raises(ValueError):
        ChannelSpec.parse(raw)


def test_parse_channel_option():
    assert ChannelSpec.parse("nixos=https://example/nixos").as_pair() == (
        "nixos",
        "https://example/nixos",
    )
