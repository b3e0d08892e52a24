"""Unit tests for the purge decision."""

import pytest

from cache_warmer.domain.model import CacheStatus, OriginCacheState
from cache_warmer.domain.purge_policy import PurgePolicy, edge_not_hit, origin_not_hit


def _status(edge: str = "HIT", origin: OriginCacheState = OriginCacheState.HIT) -> CacheStatus:
    return CacheStatus(edge_cache_state=edge, origin_cache_state=origin)


class TestOriginTrigger:
    def test_origin_miss_purges(self):
        assert PurgePolicy().should_purge(_status(origin=OriginCacheState.MISS))

    def test_origin_unknown_purges(self):
        assert PurgePolicy().should_purge(_status(origin=OriginCacheState.UNKNOWN))

    @pytest.mark.parametrize("edge", ["HIT", "MISS", "DYNAMIC", "N/A"])
    def test_origin_hit_never_purges_regardless_of_edge(self, edge):
        assert not PurgePolicy().should_purge(_status(edge=edge, origin=OriginCacheState.HIT))


class TestEdgeTrigger:
    def test_edge_miss_purges_even_when_origin_hit(self):
        policy = PurgePolicy("edge")

        assert policy.should_purge(_status(edge="MISS", origin=OriginCacheState.HIT))

    def test_edge_hit_is_left_alone(self):
        policy = PurgePolicy("edge")

        assert not policy.should_purge(_status(edge="hit", origin=OriginCacheState.MISS))


def test_predicates_are_plain_functions():
    status = _status(edge="MISS", origin=OriginCacheState.HIT)

    assert edge_not_hit(status)
    assert not origin_not_hit(status)


def test_unknown_trigger_rejected():
    with pytest.raises(ValueError, match="Unknown purge trigger"):
        PurgePolicy("sometimes")  # type: ignore[arg-type]
