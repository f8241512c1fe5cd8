"""Agent 베이스 클래스

모든 전문 Agent의 공통 인터페이스(계약)와 생명주기 로직을 제공합니다.
Orchestrator는 구체 클래스가 아니라 AdvisoryAgent 프로토콜에만 의존합니다.
"""

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from agent_framework import ChatAgent

from ..utils.errors import (
    AgentNotInitializedError,
    AgentProcessingError,
    InvalidResponseError,
)
from ..utils.logger import get_logger
from .models import (
    AgentCapabilities,
    AgentContext,
    AgentResponse,
    AgentType,
    Evidence,
    FollowUpSuggestion,
    clamp_unit,
)

logger = get_logger(__name__)

# 공통 지원 범위
DEFAULT_JURISDICTIONS = frozenset(
    {"US", "UK", "EU", "Luxembourg", "Singapore", "Hong Kong"}
)
DEFAULT_FRAMEWORKS = frozenset(
    {"AML", "CFT", "KYC", "CDD", "EDD", "SOX", "GDPR", "MiFID", "Basel"}
)


class EvidenceProvider(Protocol):
    """외부 근거 검색 협력자 인터페이스."""

    async def search(
        self, query: str, jurisdiction: str, top_k: int = 5
    ) -> list[Evidence]:
        ...


@runtime_checkable
class AdvisoryAgent(Protocol):
    """Orchestrator가 사용하는 Agent 인터페이스."""

    agent_type: AgentType
    capabilities: AgentCapabilities

    async def initialize(self) -> None:
        ...

    def can_handle(self, context: AgentContext) -> bool:
        ...

    async def process_query(self, context: AgentContext) -> AgentResponse:
        ...

    async def health_check(self) -> bool:
        ...

    async def cleanup(self) -> None:
        ...


def validate_response(response: AgentResponse) -> AgentResponse:
    """Synthesis로 넘기기 전에 필수 필드를 검증합니다.

    Args:
        response: 검증할 Agent 응답

    Returns:
        검증된 응답 (그대로 반환)

    Raises:
        InvalidResponseError: content 또는 reasoning이 비어 있는 경우
    """
    if not isinstance(response, AgentResponse):
        raise InvalidResponseError(
            f"AgentResponse가 아닌 응답: {type(response).__name__}"
        )
    if not response.content or not response.content.strip():
        raise InvalidResponseError(f"{response.agent_type} 응답에 content가 없습니다")
    if not response.reasoning or not response.reasoning.strip():
        raise InvalidResponseError(f"{response.agent_type} 응답에 reasoning이 없습니다")
    return response


class AgentResponseBuilder:
    """일관된 형식의 AgentResponse를 만드는 빌더.

    build() 시점에 필수 필드를 검증하므로 부분적으로 채워진 응답은
    만들어질 수 없습니다.

    Examples:
        >>> response = (
        ...     AgentResponseBuilder(AgentType.REGULATORY_PARSER)
        ...     .set_content("...")
        ...     .set_confidence(0.82)
        ...     .set_reasoning("...")
        ...     .build()
        ... )
    """

    def __init__(self, agent_type: AgentType | str):
        self.agent_type = AgentType(agent_type).value
        self.timestamp = datetime.now()
        self.id = f"{self.agent_type}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
        self.content: str | None = None
        self.confidence: float | None = None
        self.reasoning: str | None = None
        self.evidence: list[Evidence] = []
        self.assumptions: list[str] = []
        self.limitations: list[str] = []
        self.follow_up_suggestions: list[FollowUpSuggestion] = []
        self.processing_time_ms = 0.0

    def set_content(self, content: str) -> "AgentResponseBuilder":
        self.content = content
        return self

    def set_confidence(self, confidence: float) -> "AgentResponseBuilder":
        self.confidence = clamp_unit(confidence)
        return self

    def set_reasoning(self, reasoning: str) -> "AgentResponseBuilder":
        self.reasoning = reasoning
        return self

    def add_evidence(self, evidence: Evidence) -> "AgentResponseBuilder":
        self.evidence.append(evidence)
        return self

    def add_assumption(self, assumption: str) -> "AgentResponseBuilder":
        self.assumptions.append(assumption)
        return self

    def add_limitation(self, limitation: str) -> "AgentResponseBuilder":
        self.limitations.append(limitation)
        return self

    def add_follow_up_suggestion(
        self, suggestion: FollowUpSuggestion
    ) -> "AgentResponseBuilder":
        self.follow_up_suggestions.append(suggestion)
        return self

    def set_processing_time(self, time_ms: float) -> "AgentResponseBuilder":
        self.processing_time_ms = max(0.0, time_ms)
        return self

    def build(self) -> AgentResponse:
        """응답을 생성합니다.

        Raises:
            InvalidResponseError: content, confidence, reasoning 중 하나라도 없는 경우
        """
        if not self.content:
            raise InvalidResponseError("Agent response must have content")
        if self.confidence is None:
            raise InvalidResponseError("Agent response must have confidence score")
        if not self.reasoning:
            raise InvalidResponseError("Agent response must have reasoning")

        return AgentResponse(
            id=self.id,
            agent_type=self.agent_type,
            content=self.content,
            confidence=self.confidence,
            reasoning=self.reasoning,
            evidence=list(self.evidence),
            assumptions=list(self.assumptions),
            limitations=list(self.limitations),
            follow_up_suggestions=list(self.follow_up_suggestions),
            processing_time_ms=self.processing_time_ms,
            timestamp=self.timestamp,
        )


class BaseAgent(ABC):
    """전문 Agent 베이스 클래스

    규제 파서, 자문 생성, 신뢰도 평가 Agent가 상속하는 베이스 클래스입니다.
    process_query()는 템플릿 메서드로, 초기화 확인, 시간 측정, 예외 변환을
    담당하고 실제 도메인 로직은 서브클래스의 _process()에 위임합니다.

    Attributes:
        agent_type: Agent 종류
        capabilities: 처리 가능 범위 (관할권, 프레임워크, 질의 길이)
        agent: LLM 협력자 (chat_client가 없으면 None)
        evidence_provider: 외부 근거 검색 협력자 (없으면 None)
    """

    def __init__(
        self,
        agent_type: AgentType,
        capabilities: AgentCapabilities,
        chat_client: Any = None,
        instructions: str = "",
        evidence_provider: EvidenceProvider | None = None,
        max_history_turns: int = 5,
    ):
        """Agent를 초기화합니다.

        Args:
            agent_type: Agent 종류
            capabilities: 처리 가능 범위
            chat_client: Agent Framework ChatClient (None이면 LLM 미사용)
            instructions: LLM 시스템 프롬프트
            evidence_provider: 근거 검색 협력자 (선택)
            max_history_turns: LLM 프롬프트에 포함할 최근 대화 턴 수
        """
        self.agent_type = agent_type
        self.capabilities = capabilities
        self.chat_client = chat_client
        self.instructions = instructions
        self.evidence_provider = evidence_provider
        self.max_history_turns = max_history_turns
        self.is_initialized = False

        self.agent = (
            ChatAgent(chat_client=chat_client, instructions=instructions)
            if chat_client is not None
            else None
        )

    async def initialize(self) -> None:
        """정적 참조 데이터를 로드합니다. 이미 초기화되었으면 아무것도 하지 않습니다."""
        if self.is_initialized:
            return

        try:
            await self._load_reference_data()
        except Exception as e:
            logger.error(f"{self.__class__.__name__} 초기화 실패: {e}", exc_info=True)
            raise

        self.is_initialized = True
        logger.info(f"{self.__class__.__name__} 초기화 완료 (llm={self.agent is not None})")

    def can_handle(self, context: AgentContext) -> bool:
        """이 Agent가 주어진 컨텍스트를 처리할 수 있는지 판단합니다.

        관할권이 지원 범위에 있고, 프레임워크가 하나 이상 겹치며,
        질의 길이가 최대값 이하일 때만 True입니다.
        """
        caps = self.capabilities
        return (
            context.jurisdiction in caps.supported_jurisdictions
            and any(fw in caps.supported_frameworks for fw in context.compliance_frameworks)
            and len(context.query) <= caps.max_query_length
        )

    async def process_query(self, context: AgentContext) -> AgentResponse:
        """질의를 처리하여 완전한 AgentResponse를 반환합니다.

        Args:
            context: 질의 컨텍스트

        Returns:
            필수 필드가 모두 채워진 AgentResponse

        Raises:
            AgentNotInitializedError: initialize()가 호출되지 않은 경우
            InvalidResponseError: 필수 필드가 누락된 응답이 만들어진 경우
            AgentProcessingError: 도메인 로직 또는 협력자 호출 실패
        """
        if not self.is_initialized:
            raise AgentNotInitializedError(
                f"{self.__class__.__name__}가 초기화되지 않았습니다"
            )

        start = time.perf_counter()
        builder = AgentResponseBuilder(self.agent_type)

        try:
            await self._process(context, builder)
            builder.set_processing_time((time.perf_counter() - start) * 1000)
            response = builder.build()
        except (AgentProcessingError, InvalidResponseError):
            raise
        except Exception as e:
            logger.error(f"{self.agent_type.value} 처리 중 오류: {e}", exc_info=True)
            raise AgentProcessingError(
                f"{self.agent_type.value} 처리 실패: {e}",
                agent_type=self.agent_type.value,
            ) from e

        logger.debug(
            f"{self.agent_type.value} 응답 생성: confidence={response.confidence:.2f}, "
            f"evidence={len(response.evidence)}, time={response.processing_time_ms:.1f}ms"
        )
        return response

    async def health_check(self) -> bool:
        """초기화 여부와 참조 데이터 적재 상태를 확인합니다."""
        return self.is_initialized and self._has_reference_data()

    async def cleanup(self) -> None:
        """참조 데이터와 캐시를 비우고 미초기화 상태로 되돌립니다."""
        self._clear_reference_data()
        self.is_initialized = False
        logger.info(f"{self.__class__.__name__} 정리 완료")

    def get_status(self) -> dict[str, Any]:
        """Agent의 현재 상태를 반환합니다.

        디버깅 및 모니터링을 위한 상태 정보입니다.
        """
        return {
            "agent_type": self.agent_type.value,
            "worker_type": self.__class__.__name__,
            "is_initialized": self.is_initialized,
            "llm_enabled": self.agent is not None,
            "evidence_provider": type(self.evidence_provider).__name__
            if self.evidence_provider is not None
            else None,
            "capabilities": {
                "supported_jurisdictions": sorted(self.capabilities.supported_jurisdictions),
                "supported_frameworks": sorted(self.capabilities.supported_frameworks),
                "max_query_length": self.capabilities.max_query_length,
                "response_time_ms": self.capabilities.response_time_ms,
                "confidence_threshold": self.capabilities.confidence_threshold,
            },
            "timestamp": datetime.now().isoformat(),
        }

    @abstractmethod
    async def _load_reference_data(self) -> None:
        """정적 참조 데이터(템플릿, 위험 모델, 신뢰도 테이블 등)를 로드합니다."""

    @abstractmethod
    def _has_reference_data(self) -> bool:
        """참조 데이터가 적재되어 있는지 반환합니다."""

    @abstractmethod
    def _clear_reference_data(self) -> None:
        """참조 데이터와 캐시를 비웁니다."""

    @abstractmethod
    async def _process(self, context: AgentContext, builder: AgentResponseBuilder) -> None:
        """도메인 로직을 실행하여 builder를 채웁니다."""

    async def _fetch_evidence(self, context: AgentContext, top_k: int = 5) -> list[Evidence]:
        """근거 검색 협력자에게서 추가 근거를 가져옵니다.

        협력자가 없으면 빈 리스트를 반환합니다. 협력자 오류는 그대로 전파됩니다.
        """
        if self.evidence_provider is None:
            return []

        evidence = await self.evidence_provider.search(
            context.query, context.jurisdiction, top_k
        )
        logger.info(f"{self.agent_type.value} 외부 근거 {len(evidence)}건 수집")
        return evidence

    async def _consult_llm(self, prompt: str, timeout: float | None = None) -> str | None:
        """LLM 협력자에게 프롬프트를 보내고 응답 텍스트를 반환합니다.

        Args:
            prompt: 프롬프트
            timeout: 타임아웃 (초, 기본값: 선언 응답 시간)

        Returns:
            응답 텍스트 (LLM이 설정되지 않았으면 None)

        Raises:
            asyncio.TimeoutError: 타임아웃 초과 시
        """
        if self.agent is None:
            return None

        timeout = timeout or self.capabilities.response_time_ms / 1000
        response = await asyncio.wait_for(self.agent.run(prompt), timeout=timeout)
        return self._extract_content_from_response(response)

    def _format_history(self, context: AgentContext) -> str:
        """최근 대화 턴을 프롬프트용 문자열로 포맷팅합니다."""
        if not context.conversation_history or self.max_history_turns == 0:
            return "없음"

        lines = []
        for turn in context.conversation_history[-self.max_history_turns :]:
            lines.append(f"사용자: {turn.query}")
            if turn.response:
                lines.append(f"Assistant: {turn.response}")
        return "\n".join(lines)

    def _extract_content_from_response(self, response: Any) -> str:
        """Agent Framework 응답 객체에서 텍스트를 추출합니다."""
        if getattr(response, "text", None):
            return str(response.text)
        if getattr(response, "content", None):
            return str(response.content)
        if getattr(response, "messages", None):
            last_message = response.messages[-1]
            if getattr(last_message, "text", None):
                return str(last_message.text)
            if hasattr(last_message, "content"):
                return str(last_message.content)

        # 기본값: 문자열 변환
        return str(response)
