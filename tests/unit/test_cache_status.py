"""Unit tests for cache header classification."""

import httpx
import pytest

from cache_warmer.domain.cache_status import (
    classify_cache_status,
    classify_origin_state,
    extract_edge_node_id,
)
from cache_warmer.domain.model import UNKNOWN, CacheStatus, OriginCacheState


class TestExtractEdgeNodeId:
    @pytest.mark.parametrize(
        ("trace", "expected"),
        [
            ("abc-edge42", "edge42"),
            ("8a1b2c3d4e5f6789-CDG", "CDG"),
            ("abc-def-ghi", "def-ghi"),
            ("noHyphenHere", UNKNOWN),
            ("trailing-", UNKNOWN),
            ("", UNKNOWN),
            (None, UNKNOWN),
        ],
    )
    def test_extracts_token_after_first_hyphen(self, trace, expected):
        assert extract_edge_node_id(trace) == expected


class TestClassifyOriginState:
    def test_hit_is_case_insensitive(self):
        assert classify_origin_state("hit") is OriginCacheState.HIT
        assert classify_origin_state("HIT") is OriginCacheState.HIT

    def test_any_other_value_is_miss(self):
        assert classify_origin_state("miss") is OriginCacheState.MISS
        assert classify_origin_state("expired") is OriginCacheState.MISS

    def test_absent_is_unknown(self):
        assert classify_origin_state(None) is OriginCacheState.UNKNOWN


class TestClassifyCacheStatus:
    def test_full_header_set(self):
        status = classify_cache_status(
            {
                "cf-cache-status": "HIT",
                "cf-ray": "8a1b2c3d-SIN",
                "x-litespeed-cache": "hit",
            }
        )

        assert status == CacheStatus(
            edge_cache_state="HIT",
            origin_cache_state=OriginCacheState.HIT,
            edge_node_id="SIN",
            origin_cache_header="hit",
        )
        assert status.origin_hit
        assert status.edge_hit

    def test_missing_headers_default_to_unknown(self):
        status = classify_cache_status({})

        assert status.edge_cache_state == UNKNOWN
        assert status.origin_cache_state is OriginCacheState.UNKNOWN
        assert status.edge_node_id == UNKNOWN
        assert status.origin_cache_header == UNKNOWN
        assert not status.origin_hit
        assert not status.edge_hit

    def test_blank_header_counts_as_missing(self):
        status = classify_cache_status({"cf-cache-status": "  ", "x-litespeed-cache": ""})

        assert status.edge_cache_state == UNKNOWN
        assert status.origin_cache_state is OriginCacheState.UNKNOWN

    def test_header_names_are_case_insensitive(self):
        status = classify_cache_status({"CF-Cache-Status": "MISS", "X-LiteSpeed-Cache": "miss"})

        assert status.edge_cache_state == "MISS"
        assert status.origin_cache_state is OriginCacheState.MISS

    def test_accepts_httpx_headers(self):
        headers = httpx.Headers({"CF-RAY": "abc-edge42", "cf-cache-status": "DYNAMIC"})

        status = classify_cache_status(headers)

        assert status.edge_node_id == "edge42"
        assert status.edge_cache_state == "DYNAMIC"

    def test_is_deterministic(self):
        headers = {"cf-cache-status": "EXPIRED", "cf-ray": "x-y", "x-litespeed-cache": "miss"}

        assert classify_cache_status(headers) == classify_cache_status(dict(headers))
