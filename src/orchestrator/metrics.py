"""신뢰도 및 품질 지표.

종합 결과의 신뢰도 집계, 품질 점수, 전략별 처리 시간 통계를 계산합니다.
"""

from collections import deque
from collections.abc import Mapping
from threading import Lock

from ..agents.models import AgentResponse
from .models import AggregateConfidenceMetrics, PerformanceStats


def calculate_variance(values: list[float]) -> float:
    """모분산. 빈 목록이면 0입니다."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def calculate_response_completeness(response: AgentResponse) -> float:
    """종합 응답 기준 완결성 (본문 100자, 근거 설명 50자 기준)."""
    score = 0.0
    if len(response.content) > 100:
        score += 0.3
    if len(response.reasoning) > 50:
        score += 0.2
    if response.evidence:
        score += 0.2
    if response.assumptions:
        score += 0.1
    if response.limitations:
        score += 0.1
    if response.follow_up_suggestions:
        score += 0.1
    return min(1.0, score)


def calculate_confidence_metrics(
    contributions: Mapping[str, AgentResponse], final_response: AgentResponse
) -> AggregateConfidenceMetrics:
    confidences = {agent: r.confidence for agent, r in contributions.items()}
    values = list(confidences.values())

    return AggregateConfidenceMetrics(
        individual_confidences=confidences,
        average_confidence=sum(values) / len(values) if values else 0.0,
        final_confidence=final_response.confidence,
        confidence_variance=calculate_variance(values),
        evidence_count=len(final_response.evidence),
        suggestion_count=len(final_response.follow_up_suggestions),
    )


def calculate_quality_score(
    contributions: Mapping[str, AgentResponse], final_response: AgentResponse
) -> float:
    """종합 결과 품질 점수. 항상 [0, 1] 범위입니다.

    0.4 * 최종 신뢰도 + 0.2 * 근거 수(5개 기준) + 0.1 * 제안 수(3개 기준)
    + 0.2 * 참여 Agent 수(3개 기준) + 0.1 * 완결성
    """
    score = (
        final_response.confidence * 0.4
        + min(1.0, len(final_response.evidence) / 5) * 0.2
        + min(1.0, len(final_response.follow_up_suggestions) / 3) * 0.1
        + min(1.0, len(contributions) / 3) * 0.2
        + calculate_response_completeness(final_response) * 0.1
    )
    return max(0.0, min(1.0, score))


class PerformanceTracker:
    """전략별 최근 처리 시간을 보관합니다.

    전략마다 최대 window개를 유지하며 오래된 값부터 버립니다.
    동시 질의에서 공유되므로 lock으로 보호합니다.
    """

    def __init__(self, window: int = 100):
        self.window = window
        self._timings: dict[str, deque[float]] = {}
        self._lock = Lock()

    def record(self, strategy: str, processing_time_ms: float) -> None:
        with self._lock:
            timings = self._timings.setdefault(strategy, deque(maxlen=self.window))
            timings.append(processing_time_ms)

    def snapshot(self) -> dict[str, PerformanceStats]:
        """전략 이름 -> {average, min, max, count}"""
        with self._lock:
            copied = {name: list(timings) for name, timings in self._timings.items() if timings}

        return {
            name: PerformanceStats(
                average=sum(timings) / len(timings),
                min=min(timings),
                max=max(timings),
                count=len(timings),
            )
            for name, timings in copied.items()
        }

    def clear(self) -> None:
        with self._lock:
            self._timings.clear()
