"""Eligibility filter for derivative, synthetic and stablecoin tokens.

``should_exclude`` is a pure function: first matching rule wins.

1. Duplicate-role tie-break (tokenized gold): keep the lower rank number.
2. Database stablecoin flag.
3. Explicit symbol lists.
4. Symbol patterns.
5. Name patterns.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from bmsb.eligibility.rules import (
    DUPLICATE_ROLE_GROUPS,
    EXCLUDED_TOKENS,
    NAME_FILTERS,
    STABLECOIN_KEYWORDS,
    TOKEN_PATTERNS,
    DuplicateRoleGroup,
)
from bmsb.exceptions import AmbiguousTieBreak

REASON_DUPLICATE_LOWER_RANK = "duplicate_role_lower_rank"
REASON_DUPLICATE_DEFAULT = "duplicate_role_default_exclude"
REASON_DATABASE_STABLECOIN = "database_stablecoin"
REASON_NAME_FILTER = "name_filter"


@dataclass(frozen=True)
class AssetMeta:
    """Asset registry metadata consumed by the filter."""

    symbol: str
    name: str
    is_stablecoin: bool = False
    rank: int | None = None


@dataclass(frozen=True)
class RankedSymbol:
    """One entry of the ranked universe used for tie-breaks."""

    symbol: str
    rank: int | None = None


@dataclass(frozen=True)
class ExclusionVerdict:
    """Filter outcome. ``reason`` is set only when excluded."""

    exclude: bool
    reason: str | None = None


INCLUDE = ExclusionVerdict(exclude=False)


@dataclass
class ExclusionReport:
    """Aggregate exclusion statistics for a batch of assets."""

    total: int
    included: int
    excluded: int
    reasons: dict[str, int] = field(default_factory=dict)
    excluded_assets: list[tuple[str, str]] = field(default_factory=list)


def _rank_lookup(universe: Iterable[RankedSymbol]) -> dict[str, int | None]:
    ranks: dict[str, int | None] = {}
    for entry in universe:
        ranks.setdefault(entry.symbol.upper(), entry.rank)
    return ranks


def duplicate_role_of(
    symbol: str, groups: tuple[DuplicateRoleGroup, ...] = DUPLICATE_ROLE_GROUPS
) -> DuplicateRoleGroup | None:
    """The duplicate-role group ``symbol`` belongs to, if any."""
    symbol = symbol.upper()
    for group in groups:
        if symbol in group.members:
            return group
    return None


def _resolve_duplicate_role(
    symbol: str,
    group: DuplicateRoleGroup,
    universe: list[RankedSymbol] | None,
) -> ExclusionVerdict:
    if universe:
        ranks = _rank_lookup(universe)
        member_ranks = [ranks.get(member) for member in group.members]
        if all(rank is not None for rank in member_ranks):
            # Lower rank number = larger market cap. An earlier member wins
            # only when strictly better, so ties go to the later member.
            best, best_rank = group.members[0], member_ranks[0]
            for member, rank in zip(group.members[1:], member_ranks[1:]):
                if rank <= best_rank:  # type: ignore[operator]
                    best, best_rank = member, rank
            if symbol == best:
                return INCLUDE
            return ExclusionVerdict(True, REASON_DUPLICATE_LOWER_RANK)

    if symbol not in group.defaults:
        raise AmbiguousTieBreak(symbol)
    if group.defaults[symbol]:
        return INCLUDE
    return ExclusionVerdict(True, REASON_DUPLICATE_DEFAULT)


def should_exclude(
    asset: AssetMeta,
    universe: list[RankedSymbol] | None = None,
    groups: tuple[DuplicateRoleGroup, ...] = DUPLICATE_ROLE_GROUPS,
) -> ExclusionVerdict:
    """Decide whether an asset is hidden from ranked display.

    Args:
        asset: Registry metadata for the asset.
        universe: Optional ranked ``{symbol, rank}`` list of the whole
            universe, needed for the duplicate-role tie-break.
        groups: Duplicate-role groups to apply.

    Raises:
        AmbiguousTieBreak: when a duplicate-role member has no ranks to
            compare and no configured default.
    """
    symbol = asset.symbol.upper()

    group = duplicate_role_of(symbol, groups)
    if group is not None:
        return _resolve_duplicate_role(symbol, group, universe)

    if asset.is_stablecoin:
        return ExclusionVerdict(True, REASON_DATABASE_STABLECOIN)

    for category, symbols in EXCLUDED_TOKENS.items():
        if symbol in symbols:
            return ExclusionVerdict(True, f"explicit_{category}")

    for category, pattern in TOKEN_PATTERNS.items():
        if pattern.search(symbol):
            return ExclusionVerdict(True, f"pattern_{category}")

    name = asset.name.lower()
    for name_pattern in NAME_FILTERS:
        if name_pattern.search(name):
            return ExclusionVerdict(True, REASON_NAME_FILTER)

    return INCLUDE


def universe_of(assets: Iterable[AssetMeta]) -> list[RankedSymbol]:
    """Project asset metadata to the ranked universe list."""
    return [RankedSymbol(symbol=a.symbol.upper(), rank=a.rank) for a in assets]


def filter_ranked(
    assets: list[AssetMeta],
    universe: list[RankedSymbol] | None = None,
) -> tuple[list[AssetMeta], list[tuple[AssetMeta, str]]]:
    """Split a rank-ordered asset list into included and rejected-with-reason.

    When ``universe`` is omitted the assets themselves are the universe.
    Order is preserved in both outputs.
    """
    if universe is None:
        universe = universe_of(assets)

    included: list[AssetMeta] = []
    rejected: list[tuple[AssetMeta, str]] = []
    for asset in assets:
        verdict = should_exclude(asset, universe)
        if verdict.exclude:
            rejected.append((asset, verdict.reason or "unknown"))
        else:
            included.append(asset)
    return included, rejected


def analyze_exclusions(assets: list[AssetMeta]) -> ExclusionReport:
    """Count exclusions per reason across a batch of assets."""
    included, rejected = filter_ranked(assets)
    reasons = Counter(reason for _, reason in rejected)
    return ExclusionReport(
        total=len(assets),
        included=len(included),
        excluded=len(rejected),
        reasons=dict(reasons),
        excluded_assets=[(asset.symbol.upper(), reason) for asset, reason in rejected],
    )


def all_excluded_symbols() -> list[str]:
    """Flat, de-duplicated list of every explicitly excluded symbol."""
    seen: dict[str, None] = {}
    for symbols in EXCLUDED_TOKENS.values():
        for symbol in symbols:
            seen.setdefault(symbol, None)
    return list(seen)


def detect_stablecoin(
    symbol: str, name: str, categories: list[str] | None = None
) -> bool:
    """Heuristic stablecoin flag applied when the registry is populated.

    "pax" also matches PAXG; the tokenized-gold tie-break overrides the
    flag for it.
    """
    if categories and "stablecoins" in categories:
        return True
    symbol_lower = symbol.lower()
    name_lower = name.lower()
    return any(
        keyword in symbol_lower or keyword in name_lower
        for keyword in STABLECOIN_KEYWORDS
    )
