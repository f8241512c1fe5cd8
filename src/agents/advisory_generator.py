"""자문 생성 Agent

위험 평가와 컴플라이언스 권고안을 종합하여 실행 가능한 자문을 생성합니다.
"""

import asyncio
from datetime import datetime
from typing import Any

from ..utils.logger import get_logger
from .base import (
    DEFAULT_FRAMEWORKS,
    DEFAULT_JURISDICTIONS,
    AgentResponseBuilder,
    BaseAgent,
)
from .cache import LRUCache
from .models import (
    AgentCapabilities,
    AgentContext,
    AgentType,
    Evidence,
    RiskTolerance,
    SourceType,
)
from .reference_data import (
    ADVISORY_FOLLOW_UPS,
    ADVISORY_TEMPLATES,
    CRITICAL_ESCALATION_FOLLOW_UP,
    IMPACT_ORDER,
    PRIORITY_ORDER,
    RECOMMENDATIONS,
    RISK_MODELS,
    AdvisoryTemplate,
    ComplianceRecommendation,
    RiskModel,
)

logger = get_logger(__name__)

ADVISORY_INSTRUCTIONS = """You are a senior AML/KYC compliance analyst.

[Role]
- Review a drafted compliance advisory and add short analyst commentary
- Point out jurisdiction-specific nuances the draft may have missed

[Rules]
- Answer in at most five sentences of plain prose
- Do not repeat the recommendations verbatim
- Do not invent regulation names or article numbers
"""

# (advisory type, query keywords), first match wins
ADVISORY_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("risk_assessment", ("risk", "assessment")),
    ("compliance_procedure", ("procedure", "process", "workflow")),
    ("due_diligence", ("due diligence", "onboarding", "kyc")),
    ("monitoring", ("monitoring", "surveillance", "screening")),
    ("reporting", ("report", "filing", "disclosure")),
)

RISK_MODEL_BY_LEVEL = {
    "critical": "high_risk_client",
    "high": "high_risk_client",
    "medium": "standard_client",
    "low": "low_risk_client",
}


def determine_advisory_type(query: str) -> str:
    lowered = query.lower()
    for advisory_type, keywords in ADVISORY_TYPE_KEYWORDS:
        if any(k in lowered for k in keywords):
            return advisory_type
    return "general_advisory"


def determine_risk_level(context: AgentContext) -> str:
    """위험 허용 수준을 위험 등급으로 변환합니다. 'critical' 질의는 critical로 격상합니다."""
    if "critical" in context.query.lower():
        return "critical"
    if context.risk_tolerance == RiskTolerance.LOW:
        return "high"
    if context.risk_tolerance == RiskTolerance.HIGH:
        return "low"
    return "medium"


class AdvisoryGeneratorAgent(BaseAgent):
    """자문 생성 Agent

    위험 모델과 권고안 테이블로 구조화된 자문 본문을 작성합니다.
    chat_client가 주어지면 LLM에게 분석가 코멘트를 요청하여 본문 끝에 덧붙입니다.

    Attributes:
        templates: 카테고리별 자문 템플릿
        risk_models: 위험 모델
        recommendation_cache: 권고안 LRU 캐시
    """

    def __init__(
        self,
        chat_client: Any = None,
        cache_size: int = 256,
        max_history_turns: int = 5,
    ):
        super().__init__(
            agent_type=AgentType.ADVISORY_GENERATOR,
            capabilities=AgentCapabilities(
                supported_jurisdictions=DEFAULT_JURISDICTIONS,
                supported_frameworks=DEFAULT_FRAMEWORKS,
                max_query_length=3000,
                response_time_ms=5000,
                confidence_threshold=0.75,
            ),
            chat_client=chat_client,
            instructions=ADVISORY_INSTRUCTIONS,
            max_history_turns=max_history_turns,
        )
        self.templates: dict[str, list[AdvisoryTemplate]] = {}
        self.risk_models: dict[str, RiskModel] = {}
        self.recommendation_cache: LRUCache[list[ComplianceRecommendation]] = LRUCache(cache_size)

    async def _load_reference_data(self) -> None:
        for template in ADVISORY_TEMPLATES:
            self.templates.setdefault(template.category, []).append(template)
        self.risk_models.update(RISK_MODELS)

    def _has_reference_data(self) -> bool:
        return bool(self.templates) and bool(self.risk_models)

    def _clear_reference_data(self) -> None:
        self.templates.clear()
        self.risk_models.clear()
        self.recommendation_cache.clear()

    async def _process(self, context: AgentContext, builder: AgentResponseBuilder) -> None:
        advisory_type = determine_advisory_type(context.query)
        risk = self.assess_risk(context)
        recommendations = self.generate_recommendations(context, risk)
        template = self._match_template(advisory_type)

        content = self._build_content(context, risk, recommendations, template)

        commentary = await self._analyst_commentary(context, risk, recommendations)
        if commentary:
            content += f"## Analyst Commentary\n\n{commentary.strip()}\n"

        builder.set_content(content)
        builder.set_confidence(self._calculate_confidence(advisory_type, risk, recommendations))
        builder.set_reasoning(self._build_reasoning(advisory_type, risk, recommendations))

        now = datetime.now()
        for rec in recommendations:
            builder.add_evidence(
                Evidence(
                    id=f"ev-{rec.id}",
                    source="Advisory Framework",
                    snippet=rec.description,
                    jurisdiction=context.jurisdiction,
                    timestamp=now,
                    trust_score=0.85,
                    relevance_score=0.9,
                    source_type=SourceType.INDUSTRY_STANDARD,
                    citation=f"Advisory Recommendation: {rec.title}",
                    last_updated=now,
                )
            )

        builder.add_assumption("Current regulatory environment is stable")
        builder.add_assumption("Standard business operations and client types")
        builder.add_assumption("Adequate resources available for implementation")
        builder.add_assumption("Management commitment to compliance program")

        builder.add_limitation("Advisory based on general industry practices")
        builder.add_limitation("Specific implementation may require customization")
        builder.add_limitation("Regulatory changes may affect recommendations")
        builder.add_limitation("Risk assessment based on available information only")
        if risk.level in ("high", "critical"):
            builder.add_limitation("High-risk scenarios may require additional expert consultation")
        if self.agent is not None and not commentary:
            builder.add_limitation("Analyst commentary was unavailable for this advisory")

        suggestions = list(ADVISORY_FOLLOW_UPS)
        if risk.level == "critical":
            suggestions.append(CRITICAL_ESCALATION_FOLLOW_UP)
        for suggestion in sorted(suggestions, key=lambda s: s.confidence, reverse=True):
            builder.add_follow_up_suggestion(suggestion.model_copy())

    def assess_risk(self, context: AgentContext) -> RiskModel:
        """컨텍스트에 맞는 위험 모델을 반환합니다."""
        level = determine_risk_level(context)
        model = self.risk_models.get(RISK_MODEL_BY_LEVEL[level]) or self.risk_models["standard_client"]
        if level == "critical":
            return model.model_copy(update={"level": "critical"})
        return model

    def generate_recommendations(
        self, context: AgentContext, risk: RiskModel
    ) -> list[ComplianceRecommendation]:
        """위험 등급과 프레임워크에 맞는 권고안을 우선순위, 영향도 순으로 반환합니다."""
        frameworks = ",".join(sorted(context.compliance_frameworks))
        cache_key = f"{context.jurisdiction}-{context.risk_tolerance.value}-{risk.level}-{frameworks}"
        cached = self.recommendation_cache.get(cache_key)
        if cached is not None:
            return cached

        recommendations: list[ComplianceRecommendation] = []
        if risk.level in ("high", "critical"):
            recommendations.append(RECOMMENDATIONS["enhanced_due_diligence"])
            recommendations.append(RECOMMENDATIONS["monitoring_framework"])
        if "AML" in context.compliance_frameworks:
            recommendations.append(RECOMMENDATIONS["aml_policy_update"])
        if "KYC" in context.compliance_frameworks:
            recommendations.append(RECOMMENDATIONS["kyc_automation"])
        if not recommendations:
            recommendations.append(RECOMMENDATIONS["baseline_review"])

        recommendations.sort(
            key=lambda r: (PRIORITY_ORDER[r.priority], IMPACT_ORDER[r.impact]),
            reverse=True,
        )

        self.recommendation_cache.set(cache_key, recommendations)
        return recommendations

    def _match_template(self, advisory_type: str) -> AdvisoryTemplate | None:
        candidates = self.templates.get(advisory_type, [])
        return max(candidates, key=lambda t: t.confidence) if candidates else None

    async def _analyst_commentary(
        self,
        context: AgentContext,
        risk: RiskModel,
        recommendations: list[ComplianceRecommendation],
    ) -> str | None:
        if self.agent is None:
            return None

        prompt = f"""[Question]
{context.query}

[Jurisdiction] {context.jurisdiction}
[Frameworks] {', '.join(context.compliance_frameworks) or 'none'}
[Risk level] {risk.level}
[Recommendations] {'; '.join(r.title for r in recommendations)}

[Recent conversation]
{self._format_history(context)}

Write the analyst commentary."""

        try:
            return await self._consult_llm(prompt)
        except asyncio.TimeoutError:
            logger.warning(
                f"분석가 코멘트 시간 초과 ({self.capabilities.response_time_ms}ms), 코멘트 없이 진행"
            )
        except Exception as e:
            logger.warning(f"분석가 코멘트 생성 실패, 코멘트 없이 진행: {e}")
        return None

    @staticmethod
    def _build_content(
        context: AgentContext,
        risk: RiskModel,
        recommendations: list[ComplianceRecommendation],
        template: AdvisoryTemplate | None,
    ) -> str:
        query_preview = context.query[:100] + ("..." if len(context.query) > 100 else "")

        parts = [
            "## Executive Summary\n\n",
            f"Based on analysis of your query regarding {query_preview}, ",
            f"the risk assessment indicates a **{risk.level}** risk level. ",
            f"This advisory provides {len(recommendations)} key recommendations "
            "for compliance management.",
        ]
        if template is not None:
            parts.append(f" Methodology: {template.name}.")
        parts.append("\n\n")

        parts.append("## Risk Assessment\n\n")
        parts.append(f"**Risk Level:** {risk.level.upper()}\n\n")
        parts.append("**Key Risk Factors:**\n")
        parts.extend(f"{i}. {factor}\n" for i, factor in enumerate(risk.factors, 1))
        parts.append("\n**Mitigation Measures:**\n")
        parts.extend(f"{i}. {measure}\n" for i, measure in enumerate(risk.mitigation, 1))
        parts.append("\n")

        parts.append("## Compliance Recommendations\n\n")
        for i, rec in enumerate(recommendations, 1):
            parts.append(f"### {i}. {rec.title}\n\n")
            parts.append(
                f"**Priority:** {rec.priority.upper()} | **Timeline:** {rec.timeline} "
                f"| **Effort:** {rec.effort}\n\n"
            )
            parts.append(f"{rec.description}\n\n")
            if rec.dependencies:
                parts.append(f"**Dependencies:** {', '.join(rec.dependencies)}\n\n")

        parts.append("## Implementation Guidance\n\n")
        parts.append("**Monitoring Requirements:**\n")
        parts.extend(f"{i}. {item}\n" for i, item in enumerate(risk.monitoring, 1))
        parts.append("\n**Escalation Procedures:**\n")
        parts.extend(f"{i}. {item}\n" for i, item in enumerate(risk.escalation, 1))
        parts.append("\n")

        parts.append("## Jurisdiction-Specific Considerations\n\n")
        parts.append(
            f"This advisory is tailored for **{context.jurisdiction}** jurisdiction and "
            "considers the following compliance frameworks: "
            f"{', '.join(context.compliance_frameworks)}.\n\n"
        )
        return "".join(parts)

    @staticmethod
    def _calculate_confidence(
        advisory_type: str,
        risk: RiskModel,
        recommendations: list[ComplianceRecommendation],
    ) -> float:
        confidence = 0.7

        high_priority = [r for r in recommendations if r.priority in ("high", "critical")]
        if recommendations:
            confidence += len(high_priority) / len(recommendations) * 0.2

        if len(risk.factors) >= 3 and len(risk.mitigation) >= 3:
            confidence += 0.1

        if advisory_type != "general_advisory":
            confidence += 0.1

        return min(1.0, confidence)

    @staticmethod
    def _build_reasoning(
        advisory_type: str,
        risk: RiskModel,
        recommendations: list[ComplianceRecommendation],
    ) -> str:
        reasoning = (
            f"Advisory generated using {advisory_type} methodology with "
            f"{len(recommendations)} recommendations. "
            f"Risk assessment based on {len(risk.factors)} identified factors, "
            f"resulting in {risk.level} risk classification. "
        )

        critical = sum(1 for r in recommendations if r.priority == "critical")
        high = sum(1 for r in recommendations if r.priority == "high")
        if critical:
            reasoning += f"{critical} critical recommendations require immediate attention. "
        if high:
            reasoning += f"{high} high-priority recommendations should be addressed in the short term. "

        return reasoning + "Confidence reflects the completeness of risk assessment and recommendation specificity."
