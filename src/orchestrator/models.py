"""Orchestrator 데이터 모델.

전략, 워크플로우 실행 기록, 종합 결과 등의 데이터 구조를 정의합니다.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ..agents.confidence_scorer import ConfidenceMetrics
from ..agents.models import AgentResponse, AgentType


class SynthesisMethod(str, Enum):
    """응답 종합 방식."""

    HIERARCHICAL = "hierarchical"
    CONSENSUS = "consensus"
    WEIGHTED_AVERAGE = "weighted_average"
    HYBRID = "hybrid"


class StepStatus(str, Enum):
    """워크플로우 단계 상태.

    pending -> running -> {completed, failed}
    can_handle이 거부한 단계는 pending -> skipped
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class OrchestrationStrategy(BaseModel):
    """정적으로 정의되는 오케스트레이션 전략."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="전략 이름 (예: high_confidence)")
    display_name: str = Field(..., description="표시 이름")
    description: str = Field(default="", description="전략 설명")
    agent_sequence: tuple[AgentType, ...] = Field(..., description="실행할 Agent 순서")
    parallel_execution: bool = Field(default=False, description="병렬 실행 여부")
    synthesis_method: SynthesisMethod = Field(..., description="종합 방식")
    confidence_threshold: float = Field(..., ge=0.0, le=1.0, description="최소 신뢰도 기준")


class WorkflowStep(BaseModel):
    """Agent 호출 한 건의 실행 기록."""

    id: str = Field(..., description="단계 ID")
    agent_type: AgentType = Field(..., description="호출할 Agent 타입")
    status: StepStatus = Field(default=StepStatus.PENDING, description="단계 상태")
    started_at: datetime | None = Field(default=None, description="시작 시각")
    ended_at: datetime | None = Field(default=None, description="종료 시각")
    error: str | None = Field(default=None, description="실패 시 오류 메시지")
    attempts: int = Field(default=0, description="호출 시도 횟수")
    output: AgentResponse | None = Field(default=None, description="Agent 응답")

    @property
    def duration_ms(self) -> float | None:
        """실행 시간 (ms). 시작 또는 종료 기록이 없으면 None."""
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds() * 1000


class AgentWorkflow(BaseModel):
    """전략 한 번의 실행 기록. 질의마다 새로 만들어집니다."""

    id: str = Field(..., description="워크플로우 ID")
    strategy: str = Field(..., description="전략 이름")
    steps: list[WorkflowStep] = Field(default_factory=list, description="실행 단계")
    created_at: datetime = Field(default_factory=datetime.now, description="생성 시각")

    @property
    def failed_step(self) -> WorkflowStep | None:
        """처음으로 실패한 단계."""
        return next((s for s in self.steps if s.status == StepStatus.FAILED), None)

    def summary(self) -> list[dict[str, Any]]:
        """로그용 단계 요약."""
        return [
            {
                "agent": step.agent_type.value,
                "status": step.status.value,
                "duration_ms": step.duration_ms,
                "error": step.error,
            }
            for step in self.steps
        ]


class AggregateConfidenceMetrics(BaseModel):
    """개별 응답 집합과 종합 응답에 대한 신뢰도 지표."""

    model_config = ConfigDict(frozen=True)

    individual_confidences: dict[str, float] = Field(..., description="Agent별 신뢰도")
    average_confidence: float = Field(..., description="개별 신뢰도 산술 평균")
    final_confidence: float = Field(..., description="종합 응답 신뢰도")
    confidence_variance: float = Field(..., ge=0.0, description="개별 신뢰도 모분산")
    evidence_count: int = Field(..., ge=0, description="종합 응답 근거 수")
    suggestion_count: int = Field(..., ge=0, description="종합 응답 후속 제안 수")


class SynthesisResult(BaseModel):
    """질의 한 건의 최종 결과."""

    final_response: AgentResponse = Field(..., description="종합 응답")
    agent_contributions: dict[str, AgentResponse] = Field(
        ..., description="Agent 타입별 개별 응답"
    )
    confidence_metrics: AggregateConfidenceMetrics = Field(..., description="신뢰도 지표")
    confidence_factors: ConfidenceMetrics | None = Field(
        default=None, description="종합 응답의 8개 요인 신뢰도 평가 (scorer가 있을 때)"
    )
    synthesis_method: SynthesisMethod = Field(..., description="사용한 종합 방식")
    processing_time_ms: float = Field(..., ge=0.0, description="전체 처리 시간 (ms)")
    quality_score: float = Field(..., ge=0.0, le=1.0, description="품질 점수")
    strategy: str = Field(..., description="선택된 전략 이름")
    meets_threshold: bool = Field(..., description="전략 최소 신뢰도 충족 여부")
    workflow: AgentWorkflow = Field(..., description="워크플로우 실행 기록")

    @field_serializer("synthesis_method")
    def serialize_method(self, value: SynthesisMethod) -> str:
        return value.value


class PerformanceStats(BaseModel):
    """전략별 처리 시간 통계 (ms)."""

    model_config = ConfigDict(frozen=True)

    average: float
    min: float
    max: float
    count: int
