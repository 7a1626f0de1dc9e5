"""Token tables used by the eligibility filter.

Symbols are upper-case. Dict order is the order categories are checked,
which decides the reason reported for symbols listed in two categories.
"""

import re
from dataclasses import dataclass, field

# Explicit exclusions by symbol
EXCLUDED_TOKENS: dict[str, tuple[str, ...]] = {
    "wrapped": (
        "WETH", "WBTC", "WBNB", "WMATIC", "WAVAX", "WFTM", "WONE", "WCFX",
        "WSOL", "WADA", "WDOT", "WLINK", "WTRX",
    ),
    "liquid_staking": (
        "STETH", "RETH", "CBETH", "SFRXETH", "WSTETH", "SWETH", "OSETH",
        "MSOL", "JUPSOL", "JSOL", "BSOL", "SCNSOL", "JITOSOL", "BNSOL",
        "METH", "EZETH", "RSETH", "ETHX", "RSWETH", "SOLVBTC", "XSOLVBTC",
        "SUPEROETH",
    ),
    "stablecoins": (
        "USDT", "USDC", "BUSD", "DAI", "TUSD", "USDP", "USDD", "FRAX",
        "LUSD", "FDUSD", "PYUSD", "USDE", "CRVUSD", "GUSD", "USDM", "OUSG",
    ),
    "liquid_restaking": (
        "EZETH", "RSETH", "PZETH", "UNIETH", "RESTAKE", "CMETH",
    ),
    "cross_chain": (
        "CLBTC", "WLUNA", "WATOM", "HBTC", "RENBTC", "BTCB", "TBTC", "LBTC",
        "BTC.B", "CGETH.HASHKEY",
    ),
    "synthetic": (
        "AETHC", "ETHX", "OETH", "SETH2", "ALETH", "ANKRETH",
    ),
}

# Symbol naming conventions for wrapped/staked/bridged/vault tokens
TOKEN_PATTERNS: dict[str, re.Pattern[str]] = {
    "wrapped": re.compile(r"^W(BTC|ETH|BNB|MATIC|AVAX|FTM|ONE|CFX|SOL|ADA|DOT|LINK|TRX)$"),
    "staked": re.compile(r"^ST(ETH|MATIC|DOT|ATOM)$|^(J|B|M)SOL$"),
    "liquid_staking": re.compile(r"^(RETH|CBETH|FRXETH|SWETH|OSETH)$|^(ST|R|CB|FR|SW|OS)ETH$"),
    "bridge": re.compile(r"^(HBTC|CLBTC|RENBTC|BTCB|TBTC)$"),
    "vault": re.compile(r"VAULT|YIELD|^(Y|V)USD|^A(USDT|USDC|DAI)$", re.IGNORECASE),
}

# Name phrasing for tokens whose symbol does not give them away
NAME_FILTERS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        # wrapped
        r"^wrapped\s+(bitcoin|ethereum|bnb|matic|avalanche)",
        r"\bwrapped\s+\w+",
        # pegged
        r"^binance.?peg",
        r"\bbinance.?pegged",
        r"\bbep.?20\s+\w+",
        # liquid staking
        r"\bliquid\s+staking",
        r"\bstaking\s+derivative",
        r"\bliquid\s+staked",
        r"\bstaked\s+(ethereum|eth)\b",
        # yield / vault
        r"\byield\s+(farming|bearing|vault)",
        r"\bvault\s+token",
        r"\bsynthetic\s+(asset|token)",
        # bridge / cross-chain
        r"\bbridge\s+token",
        r"\bcross.?chain\s+(wrapped|bridge)",
        r"\bmulti.?chain\s+bridge",
    )
)


@dataclass(frozen=True)
class DuplicateRoleGroup:
    """Tokens serving the same economic role; only the best-ranked one is shown.

    ``defaults`` decides each member's fate when the universe ranks are
    missing: True includes it unconditionally (overriding a stablecoin
    flag), False excludes it. A member absent from ``defaults`` has no
    fallback.
    """

    role: str
    members: tuple[str, ...]
    defaults: dict[str, bool] = field(default_factory=dict)


TOKENIZED_GOLD = DuplicateRoleGroup(
    role="tokenized_gold",
    members=("PAXG", "XAUT"),
    defaults={"PAXG": True, "XAUT": False},
)

DUPLICATE_ROLE_GROUPS: tuple[DuplicateRoleGroup, ...] = (TOKENIZED_GOLD,)

# Substrings that mark a stablecoin at discovery time
STABLECOIN_KEYWORDS: tuple[str, ...] = (
    "usd", "usdt", "usdc", "busd", "dai", "tusd", "pax", "gusd",
    "husd", "susd", "frax", "fei", "lusd", "usdp", "ust", "ustc",
)
