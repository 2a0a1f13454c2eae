"""
Integration tests against a real Stockfish binary.

Run with: pytest --integration
"""

import pytest

from uci_harness.checklist import Checklist
from uci_harness.config import AdapterConfig, EngineConfig
from uci_harness.events import EventType
from uci_harness.factory import AdapterFactory
from uci_harness.game import GameState, GoLimits
from uci_harness.pool import STARTUP_TOPIC, EnginePoolFactory


@pytest.fixture
def engine_path(stockfish_path: str | None) -> str:
    if stockfish_path is None:
        pytest.skip("Stockfish binary not found")
    return stockfish_path


@pytest.mark.integration
class TestStockfishIntegration:
    """Tests that talk to a real engine."""

    def test_handshake_and_search(self, engine_path: str) -> None:
        adapter = AdapterFactory(AdapterConfig(quit_timeout=5.0)).create_uci(engine_path)[0]
        adapter.start()
        try:
            assert adapter.engine_name.startswith("Stockfish")
            assert "Hash" in adapter.supported_options

            adapter.compute_move(GameState(moves=["e2e4"]), GoLimits(depth=8))
            while True:
                event = adapter.read_event()
                assert event.type is not EventType.ENGINE_EXITED
                if event.type is EventType.BEST_MOVE:
                    break

            assert event.best_move
        finally:
            adapter.terminate()

        assert adapter.error_count("termination") == 0

    def test_pool_names(self, engine_path: str) -> None:
        checklist = Checklist()
        factory = EnginePoolFactory(checklist, adapter_factory=AdapterFactory(AdapterConfig(quit_timeout=5.0)))

        small = factory.create(EngineConfig(executable_path=engine_path, options={"Hash": "16"}), count=1)
        large = factory.create(EngineConfig(executable_path=engine_path, options={"Hash": "32"}), count=1)
        try:
            assert checklist.num_errors(STARTUP_TOPIC) == 0
            assert small[0].display_name.endswith("[Hash=16]")
            assert large[0].display_name.endswith("[Hash=32]")
            assert small[0].option_map == {"Hash": "16"}
        finally:
            for engine in small + large:
                engine.terminate()
