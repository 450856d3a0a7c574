"""REST wrappers for token-liquidity analysis endpoints."""

import logging

from src.client.api import ApiClient
from src.models.analysis import Analysis, HistoryResponse

logger = logging.getLogger(__name__)


class AnalysisService:
    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def analyze_token(self, token_address: str) -> Analysis:
        """Run a fresh liquidity analysis for a token.

        Can take tens of seconds; the backend queries the subgraph and the
        assistant model before responding.
        """
        data = await self._api.request(
            "POST", "/api/analyze", json={"tokenAddress": token_address.strip()}
        )
        analysis = Analysis.model_validate(data)
        logger.info(
            f"Analysis {analysis.id} for {analysis.token_address}: "
            f"risk={analysis.ai_analysis.risk_level}"
        )
        return analysis

    async def get_history(
        self,
        limit: int | None = None,
        skip: int | None = None,
        token_address: str | None = None,
    ) -> HistoryResponse:
        data = await self._api.request(
            "GET",
            "/api/history",
            params={"limit": limit, "skip": skip, "tokenAddress": token_address},
        )
        return HistoryResponse.model_validate(data)

    async def get_analysis(self, analysis_id: str) -> Analysis:
        data = await self._api.request("GET", f"/api/analysis/{analysis_id}")
        return Analysis.model_validate(data)

    async def delete_analysis(self, analysis_id: str) -> None:
        await self._api.request("DELETE", f"/api/analysis/{analysis_id}")
        logger.info(f"Deleted analysis {analysis_id}")
