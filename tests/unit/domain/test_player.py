"""
Unit Tests for Player Domain Models
===================================

Test Coverage
-------------
- Ranking labels and peak labels
- PlayerInfo JSON conversion (dashed and undashed UUIDs)
- PlayerInfo immutability
- PlayerRecord tri-state construction rules
- AllPlayers serialization
"""

from dataclasses import FrozenInstanceError
from uuid import UUID

import pytest

from src.domain.models import AllPlayers, PlayerInfo, PlayerRecord, Ranking, RecordStatus
from tests.conftest import make_profile

NOTCH = UUID("069a79f4-44e9-4726-a5be-fca90e38aaf5")


# ============================================================================
# RANKING TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestRanking:
    """Test Ranking value object."""

    def test_high_tier_label(self):
        assert Ranking(tier=3, pos=0).label == "HT3"

    def test_low_tier_label(self):
        ranking = Ranking(tier=2, pos=1)

        assert ranking.label == "LT2"
        assert ranking.is_high is False

    def test_peak_label_requires_both_fields(self):
        assert Ranking(tier=3, pos=1, peak_tier=1, peak_pos=0).peak_label == "HT1"
        assert Ranking(tier=3, pos=1, peak_tier=1).peak_label is None

    def test_from_dict_defaults_optional_fields(self):
        ranking = Ranking.from_dict({"tier": 5, "pos": 1})

        assert ranking == Ranking(tier=5, pos=1)
        assert ranking.retired is False
        assert ranking.attained == 0


# ============================================================================
# PLAYER INFO TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestPlayerInfo:
    """Test PlayerInfo value object."""

    def test_from_dict_accepts_undashed_uuid(self):
        """Upstream sends undashed UUIDs; they are normalised."""
        info = PlayerInfo.from_dict(
            {
                "uuid": "069a79f444e94726a5befca90e38aaf5",
                "name": "Notch",
                "rankings": {"sword": {"tier": 1, "pos": 0}},
                "region": "NA",
                "points": 60,
                "overall": 1,
                "badges": [{"title": "Founder", "desc": "First tester"}],
            }
        )

        assert info.uuid == NOTCH
        assert info.to_dict()["uuid"] == str(NOTCH)
        assert info.ranking_for("sword").label == "HT1"
        assert info.badges[0].title == "Founder"

    def test_dict_conversion_preserves_every_field(self):
        original = make_profile(uuid=NOTCH)

        assert PlayerInfo.from_dict(original.to_dict()) == original

    def test_missing_name_raises_key_error(self):
        with pytest.raises(KeyError):
            PlayerInfo.from_dict({"uuid": str(NOTCH)})

    def test_rankings_must_be_an_object(self):
        with pytest.raises(TypeError):
            PlayerInfo.from_dict({"uuid": str(NOTCH), "name": "Notch", "rankings": [1, 2]})

    def test_profile_is_immutable(self):
        info = make_profile()

        with pytest.raises(FrozenInstanceError):
            info.name = "Alex"  # type: ignore[misc]
        with pytest.raises(TypeError):
            info.rankings["pot"] = Ranking(tier=1, pos=0)  # type: ignore[index]

    def test_caller_dict_is_copied(self):
        rankings = {"pot": Ranking(tier=1, pos=0)}
        info = make_profile(rankings=rankings)

        rankings["axe"] = Ranking(tier=5, pos=1)

        assert "axe" not in info.rankings

    def test_has_rankings(self):
        assert make_profile().has_rankings is True
        assert make_profile(rankings={}).has_rankings is False


# ============================================================================
# PLAYER RECORD TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestPlayerRecord:
    """Test the tri-state PlayerRecord."""

    def test_present_record_carries_profile(self):
        info = make_profile()
        record = PlayerRecord.present(info)

        assert record.is_present
        assert record.info is info

    def test_unknown_singleton(self):
        assert PlayerRecord.UNKNOWN.is_unknown
        assert PlayerRecord.UNKNOWN.info is None
        assert PlayerRecord(RecordStatus.UNKNOWN) == PlayerRecord.UNKNOWN

    def test_present_without_profile_rejected(self):
        with pytest.raises(ValueError):
            PlayerRecord(RecordStatus.PRESENT)

    def test_unknown_with_profile_rejected(self):
        with pytest.raises(ValueError):
            PlayerRecord(RecordStatus.UNKNOWN, make_profile())


@pytest.mark.unit
@pytest.mark.domain
def test_all_players_to_dict():
    info = make_profile(uuid=NOTCH)
    other = UUID("9b3c1b0e-6a4f-4b4e-8f3c-2d1e0a9b8c7d")

    payload = AllPlayers(players=[info], unknown=[other]).to_dict()

    assert payload["players"][0]["name"] == info.name
    assert payload["unknown"] == [str(other)]
