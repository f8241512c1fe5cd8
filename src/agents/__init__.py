"""전문 Agent 모듈.

규제 파서, 자문 생성, 신뢰도 평가 Agent와 공통 계약 타입을 제공합니다.
"""

from .advisory_generator import AdvisoryGeneratorAgent
from .base import (
    AdvisoryAgent,
    AgentResponseBuilder,
    BaseAgent,
    EvidenceProvider,
    validate_response,
)
from .confidence_scorer import ConfidenceFactors, ConfidenceMetrics, ConfidenceScorerAgent
from .models import (
    AgentCapabilities,
    AgentContext,
    AgentResponse,
    AgentType,
    ConversationTurn,
    Evidence,
    FollowUpSuggestion,
    Priority,
    RiskTolerance,
    SourceType,
    SuggestionType,
    UserRole,
)
from .regulatory_parser import RegulatoryParserAgent

__all__ = [
    "AdvisoryAgent",
    "AdvisoryGeneratorAgent",
    "AgentCapabilities",
    "AgentContext",
    "AgentResponse",
    "AgentResponseBuilder",
    "AgentType",
    "BaseAgent",
    "ConfidenceFactors",
    "ConfidenceMetrics",
    "ConfidenceScorerAgent",
    "ConversationTurn",
    "Evidence",
    "EvidenceProvider",
    "FollowUpSuggestion",
    "Priority",
    "RegulatoryParserAgent",
    "RiskTolerance",
    "SourceType",
    "SuggestionType",
    "UserRole",
    "validate_response",
]
