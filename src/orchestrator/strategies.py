"""오케스트레이션 전략 선택.

질의 텍스트와 컨텍스트 필드로 정적 전략 중 하나를 고릅니다.
선택은 순수 함수이며 항상 전략을 반환합니다.
"""

from ..agents.models import AgentContext, AgentType, RiskTolerance, UserRole
from .models import OrchestrationStrategy, SynthesisMethod

STRATEGIES: dict[str, OrchestrationStrategy] = {
    "high_confidence": OrchestrationStrategy(
        name="high_confidence",
        display_name="High Confidence Analysis",
        description="All agents in parallel with consensus synthesis for critical queries",
        agent_sequence=(
            AgentType.REGULATORY_PARSER,
            AgentType.ADVISORY_GENERATOR,
            AgentType.CONFIDENCE_SCORER,
        ),
        parallel_execution=True,
        synthesis_method=SynthesisMethod.CONSENSUS,
        confidence_threshold=0.85,
    ),
    "regulatory_analysis": OrchestrationStrategy(
        name="regulatory_analysis",
        display_name="Regulatory Analysis",
        description="Regulatory parsing with confidence validation",
        agent_sequence=(AgentType.REGULATORY_PARSER, AgentType.CONFIDENCE_SCORER),
        parallel_execution=False,
        synthesis_method=SynthesisMethod.WEIGHTED_AVERAGE,
        confidence_threshold=0.80,
    ),
    "risk_assessment": OrchestrationStrategy(
        name="risk_assessment",
        display_name="Risk Assessment",
        description="Advisory generation focused on risk with confidence validation",
        agent_sequence=(AgentType.ADVISORY_GENERATOR, AgentType.CONFIDENCE_SCORER),
        parallel_execution=False,
        synthesis_method=SynthesisMethod.HYBRID,
        confidence_threshold=0.80,
    ),
    "standard_advisory": OrchestrationStrategy(
        name="standard_advisory",
        display_name="Standard Advisory",
        description="Regulatory parsing, advisory generation and confidence scoring in order",
        agent_sequence=(
            AgentType.REGULATORY_PARSER,
            AgentType.ADVISORY_GENERATOR,
            AgentType.CONFIDENCE_SCORER,
        ),
        parallel_execution=False,
        synthesis_method=SynthesisMethod.HIERARCHICAL,
        confidence_threshold=0.75,
    ),
}

HIGH_CONFIDENCE_KEYWORDS = ("critical", "urgent")
REGULATORY_KEYWORDS = ("regulation", "requirement", "compliance", "obligation")
RISK_KEYWORDS = ("risk", "assessment", "evaluation", "analysis")


def select_strategy(context: AgentContext) -> OrchestrationStrategy:
    """컨텍스트에 맞는 전략을 선택합니다. 먼저 일치한 규칙을 사용합니다.

    1. critical/urgent 질의, 낮은 위험 허용도, 컴플라이언스 담당자 -> high_confidence
    2. 규제 관련 키워드 -> regulatory_analysis
    3. 위험 관련 키워드 -> risk_assessment
    4. 그 외 -> standard_advisory

    Examples:
        >>> select_strategy(context).name
        'regulatory_analysis'
    """
    query = context.query.lower()

    if (
        any(k in query for k in HIGH_CONFIDENCE_KEYWORDS)
        or context.risk_tolerance == RiskTolerance.LOW
        or context.user_role == UserRole.COMPLIANCE_OFFICER
    ):
        return STRATEGIES["high_confidence"]

    if any(k in query for k in REGULATORY_KEYWORDS):
        return STRATEGIES["regulatory_analysis"]

    if any(k in query for k in RISK_KEYWORDS):
        return STRATEGIES["risk_assessment"]

    return STRATEGIES["standard_advisory"]
