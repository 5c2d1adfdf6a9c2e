"""
Unit Tests for the Composition Root
===================================

Test Coverage
-------------
- build_application wires the store to the connected backend
- main() exits non-zero when Redis is unreachable and shuts down cleanly
- Dropped log records are reported at shutdown
"""

import pytest

from src import main as entrypoint
from src.core.cache.player import PlayerCacheStore
from src.core.exceptions import BackendConnectivityError
from src.core.logging.logger import LoggingHealth


@pytest.fixture(autouse=True)
def quiet_logging(mocker):
    mocker.patch.object(entrypoint, "setup_logging")
    mocker.patch.object(entrypoint, "shutdown_logging")


@pytest.mark.unit
class TestBuildApplication:

    async def test_wires_store_to_backend(self, mocker, backend):
        connect = mocker.patch.object(entrypoint.RedisService, "connect", mocker.AsyncMock(return_value=backend))

        app = await entrypoint.build_application()

        connect.assert_awaited_once()
        assert app.backend is backend
        assert isinstance(app.store, PlayerCacheStore)
        assert app.store.profile_ttl == entrypoint.Config.PROFILE_TTL_SECONDS


@pytest.mark.unit
class TestMain:

    async def test_unreachable_redis_returns_error_code(self, mocker):
        failure = BackendConnectivityError("redis", ConnectionError("refused"))
        mocker.patch.object(entrypoint.RedisService, "connect", mocker.AsyncMock(side_effect=failure))

        assert await entrypoint.main() == 1

    async def test_successful_run_closes_backend(self, mocker, backend):
        backend.shutdown = mocker.AsyncMock()
        mocker.patch.object(entrypoint.RedisService, "connect", mocker.AsyncMock(return_value=backend))

        assert await entrypoint.main() == 0
        backend.shutdown.assert_awaited_once()

    async def test_dropped_log_records_are_reported(self, mocker, backend, caplog):
        backend.shutdown = mocker.AsyncMock()
        mocker.patch.object(entrypoint.RedisService, "connect", mocker.AsyncMock(return_value=backend))
        mocker.patch.object(
            entrypoint,
            "get_logging_health",
            return_value=LoggingHealth(
                initialized=True,
                queue_size=0,
                queue_max_size=10_000,
                records_enqueued=120,
                records_dropped=4,
                listener_errors=0,
            ),
        )

        assert await entrypoint.main() == 0

        lost = [r for r in caplog.records if r.getMessage() == "Log records were lost during this run"]
        assert len(lost) == 1
        assert lost[0].records_dropped == 4

    async def test_clean_logging_run_adds_no_warning(self, mocker, backend, caplog):
        backend.shutdown = mocker.AsyncMock()
        mocker.patch.object(entrypoint.RedisService, "connect", mocker.AsyncMock(return_value=backend))

        assert await entrypoint.main() == 0

        assert "Log records were lost" not in caplog.text
