"""Azure AI Search 근거 검색

규제 근거 인덱스를 검색하여 Agent가 사용할 Evidence 목록을 반환합니다.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from ...utils.config import get_azure_search_client
from ...utils.errors import EvidenceSearchError
from ...utils.logger import get_logger
from ..models import Evidence, SourceType, clamp_unit
from .models import SearchDocument

logger = get_logger(__name__)

SELECT_FIELDS = [
    "id",
    "title",
    "content",
    "jurisdiction",
    "source_type",
    "authority",
    "url",
    "trust_score",
    "last_updated",
]

DEFAULT_TRUST_SCORE = 0.7


def build_jurisdiction_filter(jurisdiction: str) -> str:
    """관할권 OData 필터를 만듭니다. Global 문서는 항상 포함합니다.

    Examples:
        >>> build_jurisdiction_filter("EU")
        "jurisdiction eq 'EU' or jurisdiction eq 'Global'"
    """
    escaped = jurisdiction.replace("'", "''")
    if jurisdiction == "Global":
        return "jurisdiction eq 'Global'"
    return f"jurisdiction eq '{escaped}' or jurisdiction eq 'Global'"


class AzureSearchEvidenceProvider:
    """Azure AI Search 근거 검색 협력자

    SearchClient는 동기 API이므로 검색은 worker thread에서 실행합니다.

    Examples:
        >>> provider = AzureSearchEvidenceProvider.from_config()
        >>> evidence = await provider.search("PEP enhanced due diligence", "Luxembourg")
        >>> print(evidence[0].citation)
    """

    def __init__(self, search_client: Any, top_k: int = 5):
        """
        Args:
            search_client: azure.search.documents.SearchClient (테스트에서는 Mock)
            top_k: 기본 최대 결과 수
        """
        self.search_client = search_client
        self.top_k = top_k

    @classmethod
    def from_config(
        cls, index_name: str | None = None, top_k: int = 5
    ) -> AzureSearchEvidenceProvider:
        """설정 파일의 Azure AI Search 설정으로 협력자를 만듭니다.

        Raises:
            ConfigError: 엔드포인트 누락 또는 클라이언트 초기화 실패
        """
        return cls(get_azure_search_client(index_name), top_k=top_k)

    async def search(
        self, query: str, jurisdiction: str, top_k: int | None = None
    ) -> list[Evidence]:
        """관할권 필터를 적용하여 근거를 검색합니다.

        Args:
            query: 검색 쿼리
            jurisdiction: 관할권 (Global 문서는 항상 포함)
            top_k: 최대 결과 수 (기본값: 생성 시 설정값)

        Returns:
            Evidence 목록 (검색 점수 순)

        Raises:
            EvidenceSearchError: 검색 실패 시
        """
        filter_expr = build_jurisdiction_filter(jurisdiction)
        top = top_k or self.top_k

        try:
            documents = await asyncio.to_thread(self._search, query, filter_expr, top)
        except Exception as e:
            logger.error(f"근거 검색 중 오류 발생: {e}", exc_info=True)
            raise EvidenceSearchError(f"근거 검색 실패: {e}") from e

        evidence = self._to_evidence(documents, jurisdiction)
        logger.info(
            f"근거 검색 완료: query='{query[:50]}', filter='{filter_expr}', results={len(evidence)}"
        )
        return evidence

    def _search(self, query: str, filter_expr: str, top: int) -> list[SearchDocument]:
        results = self.search_client.search(
            search_text=query,
            filter=filter_expr,
            top=top,
            select=SELECT_FIELDS,
        )

        documents = []
        for result in results:
            documents.append(
                SearchDocument(
                    id=result.get("id") or "",
                    title=result.get("title"),
                    content=result.get("content"),
                    jurisdiction=result.get("jurisdiction"),
                    source_type=result.get("source_type"),
                    authority=result.get("authority"),
                    url=result.get("url"),
                    trust_score=result.get("trust_score"),
                    last_updated=result.get("last_updated"),
                    score=result.get("@search.score"),
                )
            )
        return documents

    @staticmethod
    def _to_evidence(documents: list[SearchDocument], jurisdiction: str) -> list[Evidence]:
        # 검색 점수는 상한이 없으므로 최고 점수 기준으로 정규화
        max_score = max((doc.score or 0.0 for doc in documents), default=0.0)
        now = datetime.now()

        evidence = []
        for doc in documents:
            if not doc.content:
                continue

            try:
                source_type = SourceType(doc.source_type or SourceType.GUIDANCE.value)
            except ValueError:
                source_type = SourceType.INDUSTRY_STANDARD

            source = doc.title or doc.authority or doc.id
            last_updated = doc.last_updated or now
            relevance = (doc.score or 0.0) / max_score if max_score > 0 else 0.5

            evidence.append(
                Evidence(
                    id=f"ev-search-{doc.id}",
                    source=source,
                    snippet=doc.content,
                    jurisdiction=doc.jurisdiction or jurisdiction,
                    timestamp=last_updated,
                    trust_score=clamp_unit(
                        doc.trust_score if doc.trust_score is not None else DEFAULT_TRUST_SCORE
                    ),
                    relevance_score=clamp_unit(relevance),
                    url=doc.url,
                    source_type=source_type,
                    citation=f"{doc.authority} {source}" if doc.authority else source,
                    last_updated=last_updated,
                )
            )
        return evidence
