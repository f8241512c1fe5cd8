"""Orchestrator 모듈.

전략 선택, 워크플로우 실행, 응답 종합, 신뢰도/품질 지표를 담당합니다.
"""

from .metrics import PerformanceTracker, calculate_quality_score, calculate_variance
from .models import (
    AgentWorkflow,
    AggregateConfidenceMetrics,
    OrchestrationStrategy,
    PerformanceStats,
    StepStatus,
    SynthesisMethod,
    SynthesisResult,
    WorkflowStep,
)
from .orchestrator import Orchestrator
from .strategies import STRATEGIES, select_strategy
from .synthesis import synthesize
from .workflow import WorkflowExecutor

__all__ = [
    "AgentWorkflow",
    "AggregateConfidenceMetrics",
    "Orchestrator",
    "OrchestrationStrategy",
    "PerformanceStats",
    "PerformanceTracker",
    "STRATEGIES",
    "StepStatus",
    "SynthesisMethod",
    "SynthesisResult",
    "WorkflowExecutor",
    "WorkflowStep",
    "calculate_quality_score",
    "calculate_variance",
    "select_strategy",
    "synthesize",
]
