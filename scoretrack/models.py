# scoretrack/models.py
from __future__ import annotations
from datetime import date
from pathlib import Path
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from scoretrack.currency import parse_currency


class Paths(BaseModel):
    docs_root: Path = Path("docs")
    price_root: Path = Path("../market-data")
    dividend_root: Path = Path("../dividend-data")


class Settings(BaseModel):
    log_level: str = "INFO"
    recency_days: int = 180
    snapshot_window_days: int = 180
    analysis_window_days: int = 90


class StockRecord(BaseModel):
    """One row of a score file."""
    ticker: str
    score: float
    target_price: float
    ex_dividend_date: Optional[str] = None
    dividend_per_share: Optional[float] = None
    notes: Optional[str] = None
    intrinsic_value_basic: Optional[float] = None
    intrinsic_value_adjusted: Optional[float] = None

    @field_validator(
        "score", "target_price", "dividend_per_share",
        "intrinsic_value_basic", "intrinsic_value_adjusted",
        mode="before",
    )
    @classmethod
    def currency_cell(cls, v):
        if isinstance(v, str):
            return parse_currency(v)
        return v

    @field_validator("ex_dividend_date", "notes", mode="before")
    @classmethod
    def empty_is_absent(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DailyBar(BaseModel):
    # Corpus leaves are strings; they are passed through untouched to snapshots.
    model_config = ConfigDict(populate_by_name=True)

    open: str = Field("", alias="1. open")
    high: str = Field("", alias="2. high")
    low: str = Field("", alias="3. low")
    close: str = Field("", alias="4. close")
    adjusted_close: str = Field("", alias="5. adjusted close")
    volume: str = Field("", alias="6. volume")
    dividend_amount: str = Field("", alias="7. dividend amount")
    split_coefficient: str = Field("", alias="8. split coefficient")

    @field_validator("*", mode="before")
    @classmethod
    def as_text(cls, v):
        return "" if v is None else str(v)


class PriceCorpusEntry(BaseModel):
    symbol: str
    daily: Dict[str, DailyBar] = Field(default_factory=dict)


class DividendRecord(BaseModel):
    ex_dividend_date: str = ""
    declaration_date: Optional[str] = None
    record_date: Optional[str] = None
    payment_date: Optional[str] = None
    amount: str = ""

    @field_validator("ex_dividend_date", "amount", mode="before")
    @classmethod
    def as_text(cls, v):
        return "" if v is None else str(v)


class DividendCorpusEntry(BaseModel):
    symbol: str
    records: List[DividendRecord] = Field(default_factory=list, alias="data")

    model_config = ConfigDict(populate_by_name=True)


class ScoreEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    year: str
    month_name: str = Field(alias="month")
    day: str
    relative_file_path: str = Field(alias="file")
    iso_date: str = Field(alias="date")
    performance_90_day: Optional[float] = None
    performance_annualized: Optional[float] = None
    total_stocks: Optional[int] = None

    @field_validator("year", "day", mode="before")
    @classmethod
    def as_text(cls, v):
        return str(v)

    @property
    def score_date(self) -> date:
        return date.fromisoformat(self.iso_date)


class StockPerformance(BaseModel):
    ticker: str
    buy_price: float
    target_price: float
    current_price: float
    current_date: date
    price_gain_loss_pct: float
    dividends_total: float
    total_return_pct: float
    target_upside_pct: Optional[float] = None
    reached_target: bool = False


class PortfolioPerformance(BaseModel):
    score_date: date
    mode: Literal["measured", "projected"]
    total_stocks: int
    performance_90_day: float
    performance_annualized: float
    effective_days: int
    targets_reached: int = 0
    individual: List[StockPerformance] = Field(default_factory=list)


class BatchResult(BaseModel):
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    performances: Dict[str, PortfolioPerformance] = Field(default_factory=dict)
