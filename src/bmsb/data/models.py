"""Row models for the asset registry and stored calculations."""

from dataclasses import dataclass
from datetime import date

from bmsb.eligibility.filter import AssetMeta
from bmsb.indicators.models import BMSBResult


@dataclass
class AssetRecord:
    """An asset in the registry, keyed by its CoinGecko id."""

    id: int
    coingecko_id: str
    symbol: str
    name: str
    current_rank: int | None = None
    is_stablecoin: bool = False
    is_active: bool = True
    updated_at: int | None = None  # epoch ms

    def to_meta(self) -> AssetMeta:
        """Metadata view consumed by the eligibility filter."""
        return AssetMeta(
            symbol=self.symbol,
            name=self.name,
            is_stablecoin=self.is_stablecoin,
            rank=self.current_rank,
        )


@dataclass
class StoredCalculation:
    """A persisted BMSB result with its asset and calculation day."""

    asset: AssetRecord
    calculation_date: date
    result: BMSBResult
    created_at: int  # epoch ms
