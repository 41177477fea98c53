"""Pytest configuration and fixtures for nix-installer tests."""

import subprocess

import pytest

SCENARIO_CHANNELS = [
    ("nixpkgs", "https://example/nixpkgs"),
    ("nixos", "https://example/nixos"),
]


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point the home directory at a scratch directory."""
    home_path = tmp_path / "home"
    home_path.mkdir()
    monkeypatch.setenv("HOME", str(home_path))
    return home_path


@pytest.fixture
def channels():
    return list(SCENARIO_CHANNELS)


@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / "config"
    path.mkdir()
    return path


def fake_shell_run(failing=(), stderr="boom"):
    """Build a subprocess.run replacement that echoes the probe token.

    Shells whose executable is listed in ``failing`` exit 1 with ``stderr``.
    """
    calls = []

    def run(argv, **kwargs):
        calls.append(argv)
        if argv[0] in failing:
            return subprocess.CompletedProcess(argv, 1, stdout="", stderr=stderr)
        token = argv[-1].split(" ", 1)[1]
        return subprocess.CompletedProcess(argv, 0, stdout=token + "\n", stderr="")

    run.calls = calls
    return run
