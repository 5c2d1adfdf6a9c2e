"""
Unit Tests for TierLookupService
================================

Test Coverage
-------------
- Cache hit returns without calling upstream
- Cached Unknown returns None without calling upstream
- Miss fetches, caches, and returns
- Empty-rankings policy
- Identifier validation
- Fetcher errors leave the cache untouched
"""

from uuid import UUID, uuid1, uuid4

import pytest

from src.core.cache.player import UNKNOWN_SET_KEY
from src.domain.models import PlayerRecord
from src.modules.shared.exceptions import ValidationError
from src.modules.shared.validators import is_profile_uuid, validate_profile_uuid
from src.modules.tiers.service import TierLookupService
from tests.conftest import make_profile


@pytest.fixture
def fetcher(mocker):
    return mocker.AsyncMock(return_value=None)


@pytest.fixture
def service(store, fetcher):
    return TierLookupService(store, fetcher)


@pytest.mark.unit
class TestGetProfile:

    async def test_cache_hit_skips_upstream(self, service, store, fetcher, profile):
        await store.set_player_info(profile.uuid, profile)

        assert await service.get_profile(profile.uuid) == profile
        fetcher.assert_not_awaited()

    async def test_cached_unknown_skips_upstream(self, service, store, fetcher):
        uuid = uuid4()
        await store.set_player_info(uuid, None)

        assert await service.get_profile(uuid) is None
        fetcher.assert_not_awaited()

    async def test_miss_fetches_and_populates(self, service, store, fetcher, profile):
        fetcher.return_value = profile

        result = await service.get_profile(str(profile.uuid))

        assert result == profile
        fetcher.assert_awaited_once_with(profile.uuid)
        assert await store.lookup(profile.uuid) == PlayerRecord.present(profile)

    async def test_second_call_is_served_from_cache(self, service, fetcher, profile):
        fetcher.return_value = profile

        await service.get_profile(profile.uuid)
        await service.get_profile(profile.uuid)

        assert fetcher.await_count == 1

    async def test_upstream_not_found_is_cached_as_unknown(self, service, store, fetcher, backend):
        uuid = uuid4()

        assert await service.get_profile(uuid) is None
        assert await store.lookup(uuid) is PlayerRecord.UNKNOWN
        assert str(uuid) in backend.members(UNKNOWN_SET_KEY)

    async def test_empty_rankings_are_cached_as_unknown(self, service, store, fetcher):
        untested = make_profile(rankings={})
        fetcher.return_value = untested

        assert await service.get_profile(untested.uuid) is None
        assert await store.has_player_info(untested.uuid) is False
        assert await store.lookup(untested.uuid) is PlayerRecord.UNKNOWN

    async def test_fetcher_error_caches_nothing(self, service, store, fetcher):
        uuid = uuid4()
        fetcher.side_effect = TimeoutError("upstream timed out")

        with pytest.raises(TimeoutError):
            await service.get_profile(uuid)

        assert await store.lookup(uuid) is None

    @pytest.mark.parametrize("bad", ["steve", "", str(uuid1())])
    async def test_invalid_identifier_rejected(self, service, fetcher, backend, bad):
        with pytest.raises(ValidationError):
            await service.get_profile(bad)

        fetcher.assert_not_awaited()
        assert backend.calls == []


@pytest.mark.unit
class TestOtherOperations:

    async def test_remember_profile(self, service, store, profile):
        assert await service.remember_profile(profile) == profile
        assert await store.get_player_info(profile.uuid) == profile

    async def test_remember_profile_without_rankings(self, service, store):
        untested = make_profile(rankings={})

        assert await service.remember_profile(untested) is None
        assert await store.lookup(untested.uuid) is PlayerRecord.UNKNOWN

    async def test_get_all_and_mode_tiers(self, service, store, profile):
        await service.remember_profile(profile)

        everything = await service.get_all()
        tiers = await service.get_mode_tiers("SWORD")

        assert everything.players == [profile]
        assert tiers == {profile.name: "HT2"}


@pytest.mark.unit
class TestProfileUuidValidation:

    def test_accepts_dashed_and_undashed(self):
        assert is_profile_uuid("069a79f4-44e9-4726-a5be-fca90e38aaf5")
        assert is_profile_uuid("069a79f444e94726a5befca90e38aaf5")
        assert is_profile_uuid(uuid4())

    @pytest.mark.parametrize(
        "value",
        [
            "not-a-uuid",
            str(uuid1()),
            "069a79f4-44e9-4726-c5be-fca90e38aaf5",  # non-RFC 4122 variant
            12345,
            None,
        ],
    )
    def test_rejects(self, value):
        assert is_profile_uuid(value) is False

    def test_validate_returns_uuid(self):
        assert validate_profile_uuid("069a79f444e94726a5befca90e38aaf5") == UUID(
            "069a79f4-44e9-4726-a5be-fca90e38aaf5"
        )

    def test_validate_raises_structured_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_profile_uuid("nope")

        assert exc_info.value.error_code == "VALIDATION_UUID"
        assert exc_info.value.field == "uuid"
