"""Pytest configuration for UCI harness tests."""

import os
import shutil
import sys
from pathlib import Path

import pytest

# Add the src directory to the Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires a real engine binary)"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless --integration flag is passed."""
    run_integration = config.getoption("--integration", default=False)
    if not run_integration:
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests (requires a real engine binary)",
    )


@pytest.fixture
def adapter_config():
    """Create an adapter configuration with short test timeouts."""
    from uci_harness.config import AdapterConfig

    return AdapterConfig(
        intro_scan_timeout=0.0,
        handshake_line_timeout=0.05,
        handshake_timeout=0.3,
        read_timeout=0.05,
        quit_timeout=0.1,
        tick_interval=0.02,
    )


@pytest.fixture
def uci_channel():
    """Create a fake channel that completes the UCI handshake."""
    from fakes import uci_channel

    return uci_channel()


@pytest.fixture
def silent_channel():
    """Create a fake channel that never answers."""
    from fakes import FakeChannel

    return FakeChannel()


@pytest.fixture
def stockfish_path() -> str | None:
    """Path of a real Stockfish binary, if available."""
    return shutil.which(os.environ.get("STOCKFISH_PATH", "stockfish"))


@pytest.fixture
def fake_engine_path(tmp_path: Path) -> Path:
    """Create an executable wrapper that runs tests/fake_engine.py."""
    if os.name != "posix":
        pytest.skip("Executable wrapper scripts require a POSIX system")
    script = Path(__file__).parent / "fake_engine.py"
    wrapper = tmp_path / "fake-engine"
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" -u "{script}" "$@"\n')
    wrapper.chmod(0o755)
    return wrapper
