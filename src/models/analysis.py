"""Pydantic models for token-liquidity analysis records.

These are produced by the backend analysis engine; the client only decodes
and displays them.
"""

from typing import Any, Literal

from pydantic import Field

from src.models.schemas import CamelModel


class TokenRef(CamelModel):
    symbol: str
    name: str
    decimals: str


class Pair(CamelModel):
    """A liquidity pool pairing two tokens."""

    id: str
    token0: TokenRef
    token1: TokenRef
    reserve_usd: str = Field(alias="reserveUSD")
    volume_usd: str = Field(alias="volumeUSD")
    tx_count: str


class AggregatedMetrics(CamelModel):
    average_pool_age: float
    total_transactions: int
    largest_pool: Pair | None = None
    volume_to_liquidity_ratio: float


class PoolData(CamelModel):
    pairs: list[Pair] = Field(default_factory=list)
    token_info: dict[str, Any] | None = None
    total_liquidity_usd: float = Field(alias="totalLiquidityUSD")
    total_volume_usd: float = Field(alias="totalVolumeUSD")
    aggregated_metrics: AggregatedMetrics


class AIAnalysis(CamelModel):
    """Assistant-generated assessment of a token's liquidity.

    Attributes:
        liquidity_health_score: Score from 0 (unhealthy) to 100 (healthy).
        risk_level: Overall risk bucket.
        insights: Notable observations.
        red_flags: Warning signs.
        recommendations: Suggested actions.
        summary: Short prose summary.
    """

    liquidity_health_score: float = Field(ge=0, le=100)
    risk_level: Literal["Low", "Medium", "High"]
    insights: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    summary: str = ""


class AnalysisMetadata(CamelModel):
    analyzed_at: str
    processing_time_ms: int = Field(ge=0)
    subgraph_version: str | None = None


class Analysis(CamelModel):
    id: str
    token_address: str
    pool_data: PoolData
    ai_analysis: AIAnalysis = Field(alias="aiAnalysis")
    metadata: AnalysisMetadata
    created_at: str


class PaginationInfo(CamelModel):
    total: int = Field(ge=0)
    limit: int
    skip: int
    has_more: bool


class HistoryResponse(CamelModel):
    data: list[Analysis] = Field(default_factory=list)
    pagination: PaginationInfo
