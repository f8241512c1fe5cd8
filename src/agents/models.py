"""Agent 공통 데이터 모델.

모든 Agent와 Orchestrator가 주고받는 계약(contract) 타입을 정의합니다.
모든 모델은 생성 후 변경되지 않습니다 (frozen).
"""

import math
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AgentType(str, Enum):
    """Agent 종류."""

    REGULATORY_PARSER = "regulatory_parser"
    ADVISORY_GENERATOR = "advisory_generator"
    CONFIDENCE_SCORER = "confidence_scorer"


class RiskTolerance(str, Enum):
    """요청자의 위험 허용 수준."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    """요청자 역할."""

    ANALYST = "analyst"
    MANAGER = "manager"
    COMPLIANCE_OFFICER = "compliance_officer"
    AUDITOR = "auditor"


class SourceType(str, Enum):
    """근거 출처 유형."""

    REGULATION = "regulation"
    GUIDANCE = "guidance"
    CASE_LAW = "case_law"
    INDUSTRY_STANDARD = "industry_standard"
    INTERNAL_POLICY = "internal_policy"


class SuggestionType(str, Enum):
    """후속 조치 제안 유형."""

    CLARIFICATION = "clarification"
    WORKFLOW = "workflow"
    ANALYSIS = "analysis"
    RECOMMENDATION = "recommendation"
    ESCALATION = "escalation"


class Priority(str, Enum):
    """후속 조치 우선순위."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def clamp_unit(value: float) -> float:
    """값을 [0, 1] 범위로 제한합니다. NaN은 0.0으로 처리합니다."""
    value = float(value)
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


class ConversationTurn(BaseModel):
    """이전 대화 턴."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="턴 ID")
    query: str = Field(..., description="이전 질의")
    response: str = Field(default="", description="이전 응답 요약")
    timestamp: datetime = Field(default_factory=datetime.now, description="턴 시각")


class AgentContext(BaseModel):
    """질의 단위 입력 컨텍스트.

    외부 호출자(API 레이어)가 질의마다 한 번 생성하며,
    Agent는 이를 읽기만 합니다.
    """

    model_config = ConfigDict(frozen=True)

    query: str = Field(..., description="자연어 질의")
    conversation_history: tuple[ConversationTurn, ...] = Field(
        default=(), description="이전 대화 턴"
    )
    jurisdiction: str = Field(..., description="관할권 (예: EU, Luxembourg)")
    compliance_frameworks: tuple[str, ...] = Field(
        default=(), description="적용 컴플라이언스 프레임워크 (예: AML, KYC)"
    )
    risk_tolerance: RiskTolerance = Field(
        default=RiskTolerance.MEDIUM, description="위험 허용 수준"
    )
    user_role: UserRole = Field(default=UserRole.ANALYST, description="요청자 역할")
    timestamp: datetime = Field(default_factory=datetime.now, description="질의 시각")


class Evidence(BaseModel):
    """응답을 뒷받침하는 근거 한 건."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="근거 ID")
    source: str = Field(..., description="출처 식별자 (예: FATF, CSSF Regulation 12-02)")
    snippet: str = Field(..., description="근거 텍스트 발췌")
    jurisdiction: str = Field(..., description="출처 관할권")
    timestamp: datetime = Field(..., description="근거 기준 시각")
    trust_score: float = Field(..., ge=0.0, le=1.0, description="출처 신뢰도")
    relevance_score: float = Field(..., ge=0.0, le=1.0, description="질의 관련도")
    url: str | None = Field(default=None, description="원문 URL")
    source_type: SourceType = Field(..., description="출처 유형")
    citation: str = Field(..., description="인용 표기")
    last_updated: datetime = Field(..., description="최종 갱신 시각")


class FollowUpSuggestion(BaseModel):
    """후속 조치 제안."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="제안 ID")
    text: str = Field(..., description="제안 내용")
    type: SuggestionType = Field(..., description="제안 유형")
    confidence: float = Field(..., ge=0.0, le=1.0, description="제안 유용성 신뢰도")
    priority: Priority = Field(..., description="우선순위")
    estimated_time: str = Field(..., description="예상 소요 시간 (예: 1-2 hours)")


class AgentResponse(BaseModel):
    """Agent와 Orchestrator 사이에서 교환되는 응답 단위.

    confidence는 범위를 벗어나도 거부하지 않고 [0, 1]로 보정합니다.
    content, confidence, reasoning은 필수입니다.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="응답 ID")
    agent_type: str = Field(..., description="응답을 생성한 Agent 타입")
    content: str = Field(..., description="응답 본문")
    confidence: float = Field(..., description="신뢰도 (0.0 ~ 1.0)")
    reasoning: str = Field(..., description="판단 근거 설명")
    evidence: list[Evidence] = Field(default_factory=list, description="근거 목록")
    assumptions: list[str] = Field(default_factory=list, description="가정")
    limitations: list[str] = Field(default_factory=list, description="한계")
    follow_up_suggestions: list[FollowUpSuggestion] = Field(
        default_factory=list, description="후속 조치 제안"
    )
    processing_time_ms: float = Field(default=0.0, ge=0.0, description="처리 시간 (ms)")
    timestamp: datetime = Field(default_factory=datetime.now, description="응답 시각")

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: float) -> float:
        """confidence를 [0, 1] 범위로 보정합니다."""
        return clamp_unit(value)


class AgentCapabilities(BaseModel):
    """Agent가 선언하는 처리 가능 범위."""

    model_config = ConfigDict(frozen=True)

    supported_jurisdictions: frozenset[str] = Field(..., description="지원 관할권")
    supported_frameworks: frozenset[str] = Field(..., description="지원 프레임워크")
    max_query_length: int = Field(..., gt=0, description="최대 질의 길이 (문자 수)")
    response_time_ms: int = Field(..., gt=0, description="선언 응답 시간 (ms)")
    confidence_threshold: float = Field(..., ge=0.0, le=1.0, description="신뢰도 기준값")
