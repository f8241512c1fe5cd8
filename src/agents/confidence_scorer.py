"""신뢰도 평가 Agent

자문 응답의 신뢰도를 8개 요인(근거 품질, 출처 신뢰도, 완결성, 규제 정합성,
전문가 합의, 시의성, 관할권 범위, 프레임워크 준수)으로 평가합니다.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from ..utils.errors import AgentNotInitializedError
from ..utils.logger import get_logger
from .base import (
    DEFAULT_FRAMEWORKS,
    DEFAULT_JURISDICTIONS,
    AgentResponseBuilder,
    BaseAgent,
)
from .models import (
    AgentCapabilities,
    AgentContext,
    AgentResponse,
    AgentType,
    Evidence,
    SourceType,
    clamp_unit,
)
from .reference_data import (
    CONFIDENCE_THRESHOLDS,
    EXPERT_CONSENSUS,
    FACTOR_WEIGHTS,
    FRAMEWORK_KEYWORDS,
    SCORER_FOLLOW_UPS,
    SCORING_BEST_PRACTICES,
    SOURCE_RELIABILITY,
)

logger = get_logger(__name__)

UnitFloat = Annotated[float, Field(ge=0.0, le=1.0)]

# (질의 유형, 키워드), 먼저 일치한 항목 사용
QUERY_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("aml_requirements", ("aml", "anti-money laundering")),
    ("kyc_procedures", ("kyc", "know your customer")),
    ("risk_assessment", ("risk", "assessment")),
    ("monitoring_framework", ("monitoring", "surveillance")),
    ("reporting_obligations", ("report", "filing")),
)

FACTOR_LABELS = (
    ("Evidence Quality", "evidence_quality", "Quality and relevance of supporting evidence"),
    ("Source Reliability", "source_reliability", "Authority and credibility of information sources"),
    ("Response Completeness", "response_completeness", "Thoroughness of analysis and recommendations"),
    ("Regulatory Alignment", "regulatory_alignment", "Alignment with current regulatory requirements"),
    ("Expert Consensus", "expert_consensus", "Agreement among domain experts"),
    ("Temporal Relevance", "temporal_relevance", "Recency and currency of information"),
    ("Jurisdiction Coverage", "jurisdiction_coverage", "Coverage of relevant jurisdictions"),
    ("Framework Compliance", "framework_compliance", "Compliance with specified frameworks"),
)


class ConfidenceFactors(BaseModel):
    """8개 신뢰도 요인. 모든 값은 [0, 1] 범위입니다."""

    model_config = ConfigDict(frozen=True)

    evidence_quality: UnitFloat
    source_reliability: UnitFloat
    response_completeness: UnitFloat
    regulatory_alignment: UnitFloat
    expert_consensus: UnitFloat
    temporal_relevance: UnitFloat
    jurisdiction_coverage: UnitFloat
    framework_compliance: UnitFloat


class ConfidenceMetrics(BaseModel):
    """단일 응답에 대한 신뢰도 평가 결과."""

    model_config = ConfigDict(frozen=True)

    overall_score: UnitFloat
    factors: ConfidenceFactors
    breakdown: dict[str, float]
    recommendations: list[str] = Field(default_factory=list)
    limitations: list[str] = Field(default_factory=list)


def evidence_diversity(evidence: list[Evidence]) -> float:
    """출처, 관할권, 출처 유형의 다양성 평균."""
    sources = len({e.source for e in evidence})
    jurisdictions = len({e.jurisdiction for e in evidence})
    types = len({e.source_type for e in evidence})
    return (min(1.0, sources / 3) + min(1.0, jurisdictions / 2) + min(1.0, types / 3)) / 3


def temporal_score(age_days: float) -> float:
    """근거 경과 일수에 따른 단계별 시의성 점수."""
    if age_days < 30:
        return 1.0
    if age_days < 90:
        return 0.9
    if age_days < 180:
        return 0.8
    if age_days < 365:
        return 0.7
    return 0.5


def _age_days(timestamp: datetime, now: datetime) -> float:
    # naive 값은 로컬 시각으로 간주
    if timestamp.tzinfo is not None and now.tzinfo is None:
        timestamp = timestamp.astimezone().replace(tzinfo=None)
    elif timestamp.tzinfo is None and now.tzinfo is not None:
        timestamp = timestamp.astimezone(now.tzinfo)
    return (now - timestamp).total_seconds() / 86400


def determine_query_type(query: str) -> str:
    lowered = query.lower()
    for query_type, keywords in QUERY_TYPE_KEYWORDS:
        if any(k in lowered for k in keywords):
            return query_type
    return "general_compliance"


def response_completeness(response: AgentResponse) -> float:
    """개별 응답 기준 완결성 (본문 50자, 근거 설명 20자 기준)."""
    score = 0.0
    if len(response.content) > 50:
        score += 0.3
    if len(response.reasoning) > 20:
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


class ConfidenceScorerAgent(BaseAgent):
    """신뢰도 평가 Agent

    단독 질의에는 평가 방법론을 설명하는 응답(신뢰도 0.9 고정)을 반환하고,
    calculate_confidence_score()로 다른 Agent의 응답을 8개 요인으로 평가합니다.

    Examples:
        >>> scorer = ConfidenceScorerAgent()
        >>> await scorer.initialize()
        >>> metrics = scorer.calculate_confidence_score(response, context)
        >>> print(metrics.overall_score)
    """

    def __init__(self):
        super().__init__(
            agent_type=AgentType.CONFIDENCE_SCORER,
            capabilities=AgentCapabilities(
                supported_jurisdictions=DEFAULT_JURISDICTIONS,
                supported_frameworks=DEFAULT_FRAMEWORKS,
                max_query_length=1000,
                response_time_ms=2000,
                confidence_threshold=0.8,
            ),
        )
        self.source_reliability: dict[str, float] = {}
        self.thresholds: dict[str, float] = {}
        self.expert_consensus: dict[str, float] = {}

    async def _load_reference_data(self) -> None:
        self.source_reliability.update(SOURCE_RELIABILITY)
        self.thresholds.update(CONFIDENCE_THRESHOLDS)
        self.expert_consensus.update(EXPERT_CONSENSUS)

    def _has_reference_data(self) -> bool:
        return bool(self.source_reliability) and bool(self.thresholds)

    def _clear_reference_data(self) -> None:
        self.source_reliability.clear()
        self.thresholds.clear()
        self.expert_consensus.clear()

    async def _process(self, context: AgentContext, builder: AgentResponseBuilder) -> None:
        builder.set_content(self._build_methodology_content())
        # 도메인 내용이 아니라 평가 방법론 자체에 대한 신뢰도
        builder.set_confidence(0.9)
        builder.set_reasoning(
            f"Confidence scoring methodology based on {len(self.thresholds)} confidence "
            "levels with weighted multi-factor analysis. System evaluates evidence quality, "
            "source reliability, and regulatory alignment to provide reliable confidence "
            "assessments. Methodology validated against industry standards and regulatory "
            "requirements."
        )

        now = datetime.now()
        builder.add_evidence(
            Evidence(
                id="ev-confidence-methodology",
                source="Confidence Scoring Framework",
                snippet="Multi-factor confidence scoring methodology for regulatory advisory responses",
                jurisdiction="Global",
                timestamp=now,
                trust_score=0.95,
                relevance_score=0.9,
                source_type=SourceType.INDUSTRY_STANDARD,
                citation="AML-KYC Agent Confidence Scoring Framework v1.0",
                last_updated=now,
            )
        )

        builder.add_assumption("Confidence scoring methodology is appropriate for regulatory advisory context")
        builder.add_assumption("Source reliability database is current and accurate")
        builder.add_assumption("Expert consensus data reflects current industry standards")

        builder.add_limitation("Confidence scores are estimates based on available information")
        builder.add_limitation("Methodology may need adjustment for novel or complex scenarios")
        builder.add_limitation("Source reliability scores are based on historical data")

        for suggestion in sorted(SCORER_FOLLOW_UPS, key=lambda s: s.confidence, reverse=True):
            builder.add_follow_up_suggestion(suggestion.model_copy())

    def calculate_confidence_score(
        self,
        response: AgentResponse,
        context: AgentContext,
        now: datetime | None = None,
    ) -> ConfidenceMetrics:
        """응답의 8개 신뢰도 요인과 가중 전체 점수를 계산합니다.

        Args:
            response: 평가할 응답 (개별 또는 종합 응답)
            context: 응답을 생성한 질의 컨텍스트
            now: 시의성 계산 기준 시각 (기본값: 현재 시각)

        Returns:
            ConfidenceMetrics

        Raises:
            AgentNotInitializedError: initialize() 전에 호출된 경우
        """
        if not self.is_initialized:
            raise AgentNotInitializedError("ConfidenceScorerAgent가 초기화되지 않았습니다")

        evidence = response.evidence
        factors = ConfidenceFactors(
            evidence_quality=clamp_unit(self._evidence_quality(evidence)),
            source_reliability=clamp_unit(self._source_reliability(evidence)),
            response_completeness=clamp_unit(response_completeness(response)),
            regulatory_alignment=clamp_unit(self._regulatory_alignment(evidence, context)),
            expert_consensus=clamp_unit(self._expert_consensus(evidence, context)),
            temporal_relevance=clamp_unit(self._temporal_relevance(evidence, now or datetime.now())),
            jurisdiction_coverage=clamp_unit(self._jurisdiction_coverage(evidence, context)),
            framework_compliance=clamp_unit(self._framework_compliance(response, context)),
        )

        values = factors.model_dump()
        overall = sum(values[name] * weight for name, weight in FACTOR_WEIGHTS.items())

        metrics = ConfidenceMetrics(
            overall_score=min(1.0, overall),
            factors=factors,
            breakdown={
                "evidence": factors.evidence_quality,
                "sources": factors.source_reliability,
                "completeness": factors.response_completeness,
                "regulatory": factors.regulatory_alignment,
                "consensus": factors.expert_consensus,
                "temporal": factors.temporal_relevance,
                "jurisdiction": factors.jurisdiction_coverage,
                "framework": factors.framework_compliance,
            },
            recommendations=self._recommendations(factors),
            limitations=self._limitations(factors),
        )
        logger.debug(f"신뢰도 평가 완료: agent={response.agent_type}, overall={metrics.overall_score:.3f}")
        return metrics

    @staticmethod
    def _evidence_quality(evidence: list[Evidence]) -> float:
        if not evidence:
            return 0.1
        avg_trust = sum(e.trust_score for e in evidence) / len(evidence)
        avg_relevance = sum(e.relevance_score for e in evidence) / len(evidence)
        return avg_trust * 0.4 + avg_relevance * 0.4 + evidence_diversity(evidence) * 0.2

    def _source_reliability(self, evidence: list[Evidence]) -> float:
        if not evidence:
            return 0.1
        return sum(self._lookup_reliability(e.source) for e in evidence) / len(evidence)

    def _lookup_reliability(self, source: str) -> float:
        if source in self.source_reliability:
            return self.source_reliability[source]
        # "FATF 40 Recommendations" -> FATF
        for name, score in self.source_reliability.items():
            if name in source:
                return score
        return 0.5

    @staticmethod
    def _regulatory_alignment(evidence: list[Evidence], context: AgentContext) -> float:
        framework_alignment = 0.8 if context.compliance_frameworks else 0.5
        jurisdiction_alignment = (
            0.9 if any(e.jurisdiction == context.jurisdiction for e in evidence) else 0.6
        )
        return (framework_alignment + jurisdiction_alignment) / 2

    def _expert_consensus(self, evidence: list[Evidence], context: AgentContext) -> float:
        topic = self.expert_consensus.get(determine_query_type(context.query), 0.7)
        evidence_consensus = 0.9 if len(evidence) > 2 else 0.7
        return (topic + evidence_consensus) / 2

    @staticmethod
    def _temporal_relevance(evidence: list[Evidence], now: datetime) -> float:
        if not evidence:
            return 0.1
        scores = [temporal_score(_age_days(e.timestamp, now)) for e in evidence]
        return sum(scores) / len(scores)

    @staticmethod
    def _jurisdiction_coverage(evidence: list[Evidence], context: AgentContext) -> float:
        if not evidence:
            return 0.1
        relevant = [
            e
            for e in evidence
            if e.jurisdiction in (context.jurisdiction, "Global")
            or (e.jurisdiction == "EU" and context.jurisdiction in ("Luxembourg", "UK"))
        ]
        return min(1.0, len(relevant) / len(evidence))

    @staticmethod
    def _framework_compliance(response: AgentResponse, context: AgentContext) -> float:
        if not context.compliance_frameworks:
            return 0.5
        text = f"{response.content} {response.reasoning}".lower()
        covered = sum(
            1
            for framework in context.compliance_frameworks
            if any(k in text for k in FRAMEWORK_KEYWORDS.get(framework, ()))
        )
        return covered / len(context.compliance_frameworks)

    @staticmethod
    def _recommendations(factors: ConfidenceFactors) -> list[str]:
        recommendations = []
        if factors.evidence_quality < 0.7:
            recommendations.append("Improve evidence quality by including more authoritative sources")
        if factors.source_reliability < 0.8:
            recommendations.append("Use more reliable regulatory sources and official guidance")
        if factors.response_completeness < 0.8:
            recommendations.append("Provide more comprehensive analysis with detailed reasoning")
        if factors.temporal_relevance < 0.8:
            recommendations.append("Include more recent regulatory updates and guidance")
        if factors.jurisdiction_coverage < 0.7:
            recommendations.append("Ensure adequate coverage of relevant jurisdictions")
        return recommendations

    @staticmethod
    def _limitations(factors: ConfidenceFactors) -> list[str]:
        limitations = []
        if factors.evidence_quality < 0.6:
            limitations.append("Limited evidence quality may affect reliability")
        if factors.source_reliability < 0.7:
            limitations.append("Source reliability concerns may impact confidence")
        if factors.expert_consensus < 0.7:
            limitations.append("Limited expert consensus on this topic")
        if factors.temporal_relevance < 0.7:
            limitations.append("Information may not reflect latest regulatory changes")
        return limitations

    def _build_methodology_content(self) -> str:
        lines = [
            "## Confidence Scoring Methodology",
            "",
            "Our confidence scoring system evaluates advisory responses across multiple "
            "dimensions to ensure reliability and accuracy.",
            "",
            "### Scoring Factors",
            "",
        ]
        for label, key, description in FACTOR_LABELS:
            lines.append(f"- **{label} ({FACTOR_WEIGHTS[key] * 100:.0f}%)**: {description}")

        lines += ["", "### Confidence Thresholds", ""]
        for level, threshold in self.thresholds.items():
            lines.append(f"- **{level.upper()}**: {threshold * 100:.0f}%+")

        lines += ["", "### Best Practices", ""]
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(SCORING_BEST_PRACTICES, 1))
        return "\n".join(lines) + "\n"
