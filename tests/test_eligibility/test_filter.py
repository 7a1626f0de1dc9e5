"""Tests for the asset eligibility filter.

Tests cover:
- Tokenized-gold duplicate-role tie-break (ranked and fallback)
- Stablecoin flag precedence
- Explicit symbol, symbol-pattern and name-pattern exclusions
- Batch helpers: filter_ranked, analyze_exclusions, all_excluded_symbols
- Stablecoin detection heuristic
"""

import pytest

from bmsb.eligibility.filter import (
    AssetMeta,
    RankedSymbol,
    all_excluded_symbols,
    analyze_exclusions,
    detect_stablecoin,
    filter_ranked,
    should_exclude,
)
from bmsb.eligibility.rules import EXCLUDED_TOKENS, DuplicateRoleGroup
from bmsb.exceptions import AmbiguousTieBreak

PAXG = AssetMeta(symbol="PAXG", name="PAX Gold", is_stablecoin=True)
XAUT = AssetMeta(symbol="XAUT", name="Tether Gold")


class TestTokenizedGold:
    """Only the better-ranked of PAXG/XAUT survives."""

    def test_paxg_ranked_higher(self) -> None:
        universe = [RankedSymbol("PAXG", 5), RankedSymbol("XAUT", 12)]

        assert should_exclude(PAXG, universe).exclude is False
        verdict = should_exclude(XAUT, universe)
        assert verdict.exclude is True
        assert verdict.reason == "duplicate_role_lower_rank"

    def test_xaut_ranked_higher(self) -> None:
        universe = [RankedSymbol("PAXG", 12), RankedSymbol("XAUT", 5)]

        assert should_exclude(XAUT, universe).exclude is False
        verdict = should_exclude(PAXG, universe)
        assert verdict.exclude is True
        assert verdict.reason == "duplicate_role_lower_rank"

    def test_equal_ranks_keep_xaut(self) -> None:
        """PAXG wins only when strictly better ranked."""
        universe = [RankedSymbol("PAXG", 7), RankedSymbol("XAUT", 7)]

        assert should_exclude(XAUT, universe).exclude is False
        verdict = should_exclude(PAXG, universe)
        assert verdict.exclude is True
        assert verdict.reason == "duplicate_role_lower_rank"

    def test_fallback_without_universe(self) -> None:
        """PAXG is kept even though it carries the stablecoin flag."""
        assert should_exclude(PAXG).exclude is False

        verdict = should_exclude(XAUT)
        assert verdict.exclude is True
        assert verdict.reason == "duplicate_role_default_exclude"

    def test_fallback_when_a_rank_is_missing(self) -> None:
        universe = [RankedSymbol("PAXG", None), RankedSymbol("XAUT", 3)]

        assert should_exclude(PAXG, universe).exclude is False
        assert should_exclude(XAUT, universe).exclude is True

    def test_symbol_case_ignored(self) -> None:
        asset = AssetMeta(symbol="xaut", name="Tether Gold")
        universe = [RankedSymbol("paxg", 20), RankedSymbol("xaut", 4)]

        assert should_exclude(asset, universe).exclude is False

    def test_member_without_default_is_ambiguous(self) -> None:
        group = DuplicateRoleGroup(role="test", members=("AAA", "BBB"), defaults={"AAA": True})
        asset = AssetMeta(symbol="BBB", name="Bee")

        with pytest.raises(AmbiguousTieBreak) as exc_info:
            should_exclude(asset, groups=(group,))

        assert exc_info.value.symbol == "BBB"

    def test_custom_group_resolves_with_ranks(self) -> None:
        group = DuplicateRoleGroup(role="test", members=("AAA", "BBB"))
        universe = [RankedSymbol("AAA", 9), RankedSymbol("BBB", 2)]

        verdict = should_exclude(AssetMeta("BBB", "Bee"), universe, groups=(group,))
        assert verdict.exclude is False


class TestRulePrecedence:
    """Stablecoin flag, explicit lists, patterns and names in order."""

    def test_stablecoin_flag(self) -> None:
        asset = AssetMeta(symbol="ABC", name="Some Coin", is_stablecoin=True)

        verdict = should_exclude(asset)
        assert verdict.exclude is True
        assert verdict.reason == "database_stablecoin"

    def test_stablecoin_flag_beats_explicit_list(self) -> None:
        asset = AssetMeta(symbol="WETH", name="Wrapped Ether", is_stablecoin=True)

        assert should_exclude(asset).reason == "database_stablecoin"

    @pytest.mark.parametrize(
        ("symbol", "name", "reason"),
        [
            ("WETH", "Wrapped Ether", "explicit_wrapped"),
            ("weth", "Wrapped Ether", "explicit_wrapped"),
            ("STETH", "Lido Staked Ether", "explicit_liquid_staking"),
            # Listed under liquid staking and restaking; first category wins
            ("EZETH", "Renzo Restaked ETH", "explicit_liquid_staking"),
            ("USDT", "Tether", "explicit_stablecoins"),
            ("PZETH", "Renzo Restaked LST", "explicit_liquid_restaking"),
            ("BTC.B", "Bitcoin Avalanche Bridged", "explicit_cross_chain"),
            ("OETH", "Origin Ether", "explicit_synthetic"),
        ],
    )
    def test_explicit_lists(self, symbol: str, name: str, reason: str) -> None:
        verdict = should_exclude(AssetMeta(symbol=symbol, name=name))

        assert verdict.exclude is True
        assert verdict.reason == reason

    @pytest.mark.parametrize(
        ("symbol", "reason"),
        [
            ("STATOM", "pattern_staked"),
            ("FRXETH", "pattern_liquid_staking"),
            ("MYVAULT", "pattern_vault"),
            ("YUSD", "pattern_vault"),
            ("AUSDC", "pattern_vault"),
        ],
    )
    def test_symbol_patterns(self, symbol: str, reason: str) -> None:
        verdict = should_exclude(AssetMeta(symbol=symbol, name="Some Token"))

        assert verdict.exclude is True
        assert verdict.reason == reason

    @pytest.mark.parametrize(
        "name",
        [
            "Wrapped Fantom",
            "Binance-Peg Dogecoin",
            "Lido Liquid Staking Token",
            "Yield Bearing Dollar",
            "Multichain Bridge Token",
        ],
    )
    def test_name_patterns(self, name: str) -> None:
        verdict = should_exclude(AssetMeta(symbol="XYZ", name=name))

        assert verdict.exclude is True
        assert verdict.reason == "name_filter"

    @pytest.mark.parametrize(
        ("symbol", "name"),
        [("BTC", "Bitcoin"), ("ETH", "Ethereum"), ("SOL", "Solana"), ("LINK", "Chainlink")],
    )
    def test_native_assets_included(self, symbol: str, name: str) -> None:
        verdict = should_exclude(AssetMeta(symbol=symbol, name=name))

        assert verdict.exclude is False
        assert verdict.reason is None

    def test_pure(self) -> None:
        asset = AssetMeta(symbol="WBTC", name="Wrapped Bitcoin")

        assert should_exclude(asset) == should_exclude(asset)


class TestBatchHelpers:
    """filter_ranked / analyze_exclusions / all_excluded_symbols."""

    @pytest.fixture
    def assets(self) -> list[AssetMeta]:
        return [
            AssetMeta("BTC", "Bitcoin", rank=1),
            AssetMeta("ETH", "Ethereum", rank=2),
            AssetMeta("USDT", "Tether", is_stablecoin=True, rank=3),
            AssetMeta("PAXG", "PAX Gold", is_stablecoin=True, rank=40),
            AssetMeta("XAUT", "Tether Gold", rank=55),
            AssetMeta("WBTC", "Wrapped Bitcoin", rank=15),
        ]

    def test_filter_ranked_preserves_order(self, assets: list[AssetMeta]) -> None:
        included, rejected = filter_ranked(assets)

        assert [a.symbol for a in included] == ["BTC", "ETH", "PAXG"]
        assert [(a.symbol, reason) for a, reason in rejected] == [
            ("USDT", "database_stablecoin"),
            ("XAUT", "duplicate_role_lower_rank"),
            ("WBTC", "explicit_wrapped"),
        ]

    def test_filter_ranked_explicit_universe(self, assets: list[AssetMeta]) -> None:
        universe = [RankedSymbol("PAXG", 60), RankedSymbol("XAUT", 30)]

        included, _ = filter_ranked(assets, universe)

        symbols = [a.symbol for a in included]
        assert "XAUT" in symbols
        assert "PAXG" not in symbols

    def test_analyze_exclusions(self, assets: list[AssetMeta]) -> None:
        report = analyze_exclusions(assets)

        assert report.total == 6
        assert report.included == 3
        assert report.excluded == 3
        assert report.reasons == {
            "database_stablecoin": 1,
            "duplicate_role_lower_rank": 1,
            "explicit_wrapped": 1,
        }
        assert ("WBTC", "explicit_wrapped") in report.excluded_assets

    def test_all_excluded_symbols_unique(self) -> None:
        symbols = all_excluded_symbols()

        assert len(symbols) == len(set(symbols))
        assert "EZETH" in symbols
        assert "WETH" in symbols
        expected = {s for group in EXCLUDED_TOKENS.values() for s in group}
        assert set(symbols) == expected


class TestDetectStablecoin:
    """Discovery-time stablecoin heuristic."""

    @pytest.mark.parametrize(
        ("symbol", "name"),
        [("USDC", "USD Coin"), ("DAI", "Dai"), ("FDUSD", "First Digital USD")],
    )
    def test_keyword_match(self, symbol: str, name: str) -> None:
        assert detect_stablecoin(symbol, name) is True

    def test_category_match(self) -> None:
        assert detect_stablecoin("XYZ", "Xyz", categories=["stablecoins"]) is True

    def test_regular_asset(self) -> None:
        assert detect_stablecoin("BTC", "Bitcoin") is False

    def test_paxg_flagged_but_kept_by_filter(self) -> None:
        assert detect_stablecoin("PAXG", "PAX Gold") is True
        assert should_exclude(AssetMeta("PAXG", "PAX Gold", is_stablecoin=True)).exclude is False
