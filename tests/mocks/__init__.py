"""테스트용 Mock 구현

실제 Azure AI Search, LLM, 전문 Agent 없이 테스트할 수 있도록
Mock 검색 클라이언트와 Stub Agent를 제공합니다.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from src.agents.models import (
    AgentCapabilities,
    AgentContext,
    AgentResponse,
    AgentType,
    Evidence,
    FollowUpSuggestion,
    Priority,
    SourceType,
    SuggestionType,
)
from src.utils.errors import AgentProcessingError

MOCK_EVIDENCE_DOCUMENTS: list[dict[str, Any]] = [
    {
        "id": "cssf-circular-17-650",
        "title": "CSSF Circular 17/650",
        "content": "Professionals must apply enhanced due diligence to politically exposed persons.",
        "jurisdiction": "Luxembourg",
        "source_type": "regulation",
        "authority": "CSSF",
        "url": "https://cssf.lu/circular-17-650",
        "trust_score": 0.93,
        "last_updated": datetime(2024, 3, 1),
        "@search.score": 8.0,
    },
    {
        "id": "fatf-pep-guidance",
        "title": "FATF Guidance on PEPs",
        "content": "Financial institutions should determine whether a customer is a PEP.",
        "jurisdiction": "Global",
        "source_type": "guidance",
        "authority": "FATF",
        "url": "https://www.fatf-gafi.org/pep-guidance",
        "trust_score": 0.97,
        "last_updated": datetime(2023, 6, 1),
        "@search.score": 4.0,
    },
    {
        "id": "mas-notice-626",
        "title": "MAS Notice 626",
        "content": "A bank shall perform customer due diligence measures.",
        "jurisdiction": "Singapore",
        "source_type": "regulation",
        "authority": "MAS",
        "url": None,
        "trust_score": 0.9,
        "last_updated": datetime(2024, 1, 10),
        "@search.score": 6.0,
    },
]


class MockSearchClient:
    """테스트용 Mock Azure AI Search 클라이언트

    실제 SearchClient와 동일한 search() 인터페이스를 제공하지만
    메모리의 문서 목록을 검색합니다. 호출 인자는 last_call에 기록됩니다.
    """

    def __init__(self, documents: list[dict[str, Any]] | None = None, apply_filter: bool = True):
        self._documents = MOCK_EVIDENCE_DOCUMENTS if documents is None else documents
        self.apply_filter = apply_filter
        self.last_call: dict[str, Any] | None = None

    def search(
        self,
        search_text: str,
        top: int = 10,
        filter: str | None = None,
        select: list[str] | None = None,
        **kwargs: Any,
    ):
        """Mock 검색 실행

        Returns:
            검색 결과 문서 iterator (score 내림차순)
        """
        self.last_call = {"search_text": search_text, "top": top, "filter": filter, "select": select}

        results = [doc for doc in self._documents if self._match_filter(doc, filter)]
        results.sort(key=lambda x: x.get("@search.score") or 0, reverse=True)
        return iter(results[:top])

    def _match_filter(self, doc: dict[str, Any], filter_expr: str | None) -> bool:
        """"field eq 'value' or field eq 'value'" 형식만 지원합니다."""
        if not filter_expr or not self.apply_filter:
            return True

        for clause in filter_expr.split(" or "):
            field, value = clause.split(" eq ")
            if doc.get(field.strip()) == value.strip().strip("'").replace("''", "'"):
                return True
        return False


class FailingSearchClient:
    """항상 실패하는 Mock 검색 클라이언트"""

    def search(self, *args: Any, **kwargs: Any):
        raise RuntimeError("search service unavailable")


class StaticEvidenceProvider:
    """고정 근거를 반환하는 EvidenceProvider"""

    def __init__(self, evidence: list[Evidence] | None = None, error: Exception | None = None):
        self.evidence = evidence or []
        self.error = error
        self.calls: list[tuple[str, str, int]] = []

    async def search(self, query: str, jurisdiction: str, top_k: int = 5) -> list[Evidence]:
        self.calls.append((query, jurisdiction, top_k))
        if self.error is not None:
            raise self.error
        return list(self.evidence)


def make_evidence(
    id: str = "ev-1",
    source: str = "FATF",
    jurisdiction: str = "EU",
    timestamp: datetime | None = None,
    trust_score: float = 0.9,
    relevance_score: float = 0.8,
    source_type: SourceType = SourceType.REGULATION,
) -> Evidence:
    """테스트용 Evidence를 생성합니다."""
    timestamp = timestamp or datetime.now()
    return Evidence(
        id=id,
        source=source,
        snippet=f"{source} snippet",
        jurisdiction=jurisdiction,
        timestamp=timestamp,
        trust_score=trust_score,
        relevance_score=relevance_score,
        source_type=source_type,
        citation=f"{source} citation",
        last_updated=timestamp,
    )


def make_suggestion(id: str = "fs-1", confidence: float = 0.8) -> FollowUpSuggestion:
    return FollowUpSuggestion(
        id=id,
        text=f"Suggestion {id}",
        type=SuggestionType.ANALYSIS,
        confidence=confidence,
        priority=Priority.MEDIUM,
        estimated_time="10 minutes",
    )


def make_response(
    agent_type: AgentType | str = AgentType.ADVISORY_GENERATOR,
    confidence: float = 0.8,
    content: str | None = None,
    evidence: list[Evidence] | None = None,
    suggestions: list[FollowUpSuggestion] | None = None,
) -> AgentResponse:
    """테스트용 AgentResponse를 생성합니다."""
    agent = AgentType(agent_type).value
    return AgentResponse(
        id=f"{agent}-test",
        agent_type=agent,
        content=content or f"{agent} content",
        confidence=confidence,
        reasoning=f"{agent} reasoning",
        evidence=evidence or [],
        follow_up_suggestions=suggestions or [],
    )


def make_context(
    query: str = "What are the AML obligations?",
    jurisdiction: str = "EU",
    frameworks: list[str] | None = None,
    **kwargs: Any,
) -> AgentContext:
    """테스트용 AgentContext를 생성합니다."""
    return AgentContext(
        query=query,
        jurisdiction=jurisdiction,
        compliance_frameworks=["AML", "KYC"] if frameworks is None else frameworks,
        **kwargs,
    )


class StubAgent:
    """AdvisoryAgent 프로토콜을 만족하는 테스트용 Agent

    Args:
        agent_type: Agent 타입
        confidence: 응답 신뢰도
        delay: 응답 전 대기 시간 (초)
        failures: 처음 N번의 호출을 실패시킴
        accept: can_handle 반환값
        healthy: health_check 반환값 (초기화 후)
        response_time_ms: 선언 응답 시간 (단계 타임아웃 계산용)
    """

    def __init__(
        self,
        agent_type: AgentType,
        confidence: float = 0.8,
        delay: float = 0.0,
        failures: int = 0,
        accept: bool = True,
        healthy: bool = True,
        response_time_ms: int = 1000,
        evidence: list[Evidence] | None = None,
    ):
        self.agent_type = agent_type
        self.capabilities = AgentCapabilities(
            supported_jurisdictions=frozenset({"EU", "Luxembourg"}),
            supported_frameworks=frozenset({"AML", "KYC"}),
            max_query_length=1000,
            response_time_ms=response_time_ms,
            confidence_threshold=0.7,
        )
        self.confidence = confidence
        self.delay = delay
        self.failures = failures
        self.accept = accept
        self.healthy = healthy
        self.evidence = evidence
        self.is_initialized = False
        self.calls = 0
        self.cleaned_up = False

    async def initialize(self) -> None:
        self.is_initialized = True

    def can_handle(self, context: AgentContext) -> bool:
        return self.accept

    async def process_query(self, context: AgentContext) -> AgentResponse:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls <= self.failures:
            raise AgentProcessingError(
                f"{self.agent_type.value} stub failure", agent_type=self.agent_type.value
            )
        return make_response(
            self.agent_type,
            confidence=self.confidence,
            evidence=self.evidence or [make_evidence(id=f"ev-{self.agent_type.value}")],
            suggestions=[make_suggestion(id=f"fs-{self.agent_type.value}")],
        )

    async def health_check(self) -> bool:
        return self.is_initialized and self.healthy

    async def cleanup(self) -> None:
        self.is_initialized = False
        self.cleaned_up = True
