"""
Tests for Priority Ranker — gap x score weighting and deterministic order.
"""

from decimal import Decimal

import pytest

from rebalance_engine.schemas.recommendation_output import AssetWithPriority
from rebalance_engine.tools.priority_ranker import (
    compute_priority,
    compute_priority_from_strings,
    sort_by_priority,
)
from tests.fixtures.conftest import make_asset, make_prioritized


# ---------------------------------------------------------------------------
# Test: Priority computation
# ---------------------------------------------------------------------------

class TestComputePriority:

    @pytest.mark.behavior
    @pytest.mark.parametrize("gap, score, expected", [
        ("10", "80", "8"),
        ("5", "50", "2.5"),
        ("0", "95", "0"),
        ("-10", "90", "-9"),
        ("10", "150", "15"),
        ("10", "-20", "-2"),
    ])
    def test_gap_times_normalized_score(self, gap, score, expected):
        assert compute_priority(Decimal(gap), Decimal(score)) == Decimal(expected)

    @pytest.mark.behavior
    def test_from_strings_four_places(self):
        assert compute_priority_from_strings("5", "50") == "2.5000"
        assert compute_priority_from_strings("-3.33333", "33") == "-1.1000"
        assert compute_priority_from_strings("0", "0") == "0.0000"


# ---------------------------------------------------------------------------
# Test: Ranking
# ---------------------------------------------------------------------------

class TestSortByPriority:

    @pytest.mark.behavior
    def test_descending_priority(self):
        assets = [
            make_asset("BBB", gap="5", score="50"),
            make_asset("AAA", gap="10", score="80"),
        ]
        ranked = sort_by_priority(assets)
        assert [a.symbol for a in ranked] == ["AAA", "BBB"]
        assert ranked[0].priority == Decimal(8)
        assert ranked[1].priority == Decimal("2.5")

    @pytest.mark.behavior
    def test_symbol_tie_break(self):
        assets = [
            make_asset("BBB", gap="0", score="70"),
            make_asset("AAA", gap="0", score="30"),
        ]
        ranked = sort_by_priority(assets)
        assert [a.symbol for a in ranked] == ["AAA", "BBB"]

    @pytest.mark.behavior
    def test_tie_break_on_equal_positive_priority(self):
        assets = [
            make_asset("ZED", gap="4", score="50"),
            make_asset("MID", gap="2", score="100"),
            make_asset("ACE", gap="1", score="200"),
        ]
        ranked = sort_by_priority(assets)
        assert [a.symbol for a in ranked] == ["ACE", "MID", "ZED"]

    @pytest.mark.behavior
    def test_negative_priority_ranks_last(self):
        assets = [
            make_asset("NEG", gap="-5", score="90"),
            make_asset("ZER", gap="0", score="90"),
            make_asset("POS", gap="1", score="10"),
        ]
        ranked = sort_by_priority(assets)
        assert [a.symbol for a in ranked] == ["POS", "ZER", "NEG"]

    @pytest.mark.behavior
    def test_order_independent_of_input_order(self):
        assets = [
            make_asset("CCC", gap="3", score="60"),
            make_asset("AAA", gap="0", score="60"),
            make_asset("BBB", gap="0", score="60"),
            make_asset("DDD", gap="6", score="30"),
        ]
        forward = [a.symbol for a in sort_by_priority(assets)]
        backward = [a.symbol for a in sort_by_priority(list(reversed(assets)))]
        assert forward == backward == ["CCC", "DDD", "AAA", "BBB"]

    @pytest.mark.schema
    def test_returns_prioritized_copies(self):
        asset = make_asset("AAA", gap="10", score="80", min_allocation="50")
        ranked = sort_by_priority([asset])
        assert isinstance(ranked[0], AssetWithPriority)
        assert ranked[0].id == asset.id
        assert ranked[0].min_allocation_value == Decimal("50")
        assert not hasattr(asset, "priority")

    @pytest.mark.schema
    def test_recomputes_existing_priority(self):
        already = make_prioritized("AAA", priority="99")
        ranked = sort_by_priority([already])
        assert ranked[0].priority == Decimal(0)

    @pytest.mark.behavior
    def test_empty(self):
        assert sort_by_priority([]) == []
