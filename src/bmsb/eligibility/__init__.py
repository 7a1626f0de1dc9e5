"""Asset eligibility: which tokens are derivatives, stablecoins or duplicates."""

from bmsb.eligibility.filter import (
    AssetMeta,
    ExclusionReport,
    ExclusionVerdict,
    RankedSymbol,
    all_excluded_symbols,
    analyze_exclusions,
    detect_stablecoin,
    duplicate_role_of,
    filter_ranked,
    should_exclude,
    universe_of,
)
from bmsb.eligibility.rules import DUPLICATE_ROLE_GROUPS, DuplicateRoleGroup

__all__ = [
    "DUPLICATE_ROLE_GROUPS",
    "AssetMeta",
    "DuplicateRoleGroup",
    "ExclusionReport",
    "ExclusionVerdict",
    "RankedSymbol",
    "all_excluded_symbols",
    "analyze_exclusions",
    "detect_stablecoin",
    "duplicate_role_of",
    "filter_ranked",
    "should_exclude",
    "universe_of",
]
