"""정적 참조 데이터.

규제 문서, 자문 템플릿, 위험 모델, 권고안, 출처 신뢰도 테이블을 정의합니다.
각 Agent가 initialize() 시점에 한 번 로드하며 이후에는 읽기 전용입니다.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .models import FollowUpSuggestion, Priority, SuggestionType


class RegulatoryDocument(BaseModel):
    """규제 문서."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    jurisdiction: str
    type: Literal["regulation", "directive", "guidance", "circular", "case_law"]
    content: str
    effective_date: str
    last_updated: datetime
    authority: str
    url: str
    trust_score: float = Field(..., ge=0.0, le=1.0)


class AdvisoryTemplate(BaseModel):
    """자문 템플릿."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    template: str
    variables: tuple[str, ...]
    confidence: float


class RiskModel(BaseModel):
    """위험 등급별 평가 모델."""

    model_config = ConfigDict(frozen=True)

    level: Literal["low", "medium", "high", "critical"]
    factors: tuple[str, ...]
    mitigation: tuple[str, ...]
    monitoring: tuple[str, ...]
    escalation: tuple[str, ...]


class ComplianceRecommendation(BaseModel):
    """컴플라이언스 권고안."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    priority: Literal["low", "medium", "high", "critical"]
    category: Literal["immediate", "short_term", "long_term"]
    effort: Literal["low", "medium", "high"]
    impact: Literal["low", "medium", "high"]
    dependencies: tuple[str, ...]
    timeline: str


# ============================================================
# 규제 파서
# ============================================================

REGULATORY_DOCUMENTS: tuple[RegulatoryDocument, ...] = (
    RegulatoryDocument(
        id="cssf-12-02",
        title="CSSF Regulation 12-02 on AML/CFT",
        jurisdiction="Luxembourg",
        type="regulation",
        content=(
            "Financial institutions shall implement enhanced due diligence measures "
            "for higher risk categories including politically exposed persons, "
            "high-risk countries, and complex structures."
        ),
        effective_date="2020-01-01",
        last_updated=datetime(2024, 1, 15),
        authority="CSSF",
        url="https://cssf.lu/regulation-12-02",
        trust_score=0.95,
    ),
    RegulatoryDocument(
        id="amld6-directive",
        title="AMLD6 Directive",
        jurisdiction="EU",
        type="directive",
        content=(
            "Member States shall ensure that obliged entities apply customer due "
            "diligence measures when establishing a business relationship or "
            "carrying out occasional transactions."
        ),
        effective_date="2021-12-01",
        last_updated=datetime(2024, 2, 20),
        authority="European Commission",
        url="https://eur-lex.europa.eu/amld6",
        trust_score=0.92,
    ),
    RegulatoryDocument(
        id="fatf-40-recommendations",
        title="FATF 40 Recommendations",
        jurisdiction="Global",
        type="guidance",
        content=(
            "Countries should ensure that financial institutions are subject to "
            "adequate regulation and supervision and are effectively implementing "
            "the FATF Recommendations."
        ),
        effective_date="2012-02-01",
        last_updated=datetime(2023, 10, 1),
        authority="FATF",
        url="https://www.fatf-gafi.org/40-recommendations",
        trust_score=0.98,
    ),
)

# 상위 규제 체계 (EU 지침이 적용되는 관할권)
PARENT_JURISDICTIONS: dict[str, tuple[str, ...]] = {
    "Luxembourg": ("EU",),
    "UK": ("EU",),
}

RELEVANCE_KEYWORDS: tuple[str, ...] = (
    "aml",
    "kyc",
    "cdd",
    "edd",
    "compliance",
    "due diligence",
    "risk",
    "requirement",
    "obligation",
)

# 질의 키워드 -> 문서에서 함께 찾을 동의어
KEYWORD_ALIASES: dict[str, tuple[str, ...]] = {
    "kyc": ("due diligence",),
    "cdd": ("due diligence",),
    "edd": ("enhanced due diligence",),
    "requirement": ("shall", "must"),
    "obligation": ("shall", "must"),
}

PARSER_FOLLOW_UPS: dict[str, FollowUpSuggestion] = {
    "mandatory": FollowUpSuggestion(
        id="fs-mandatory-details",
        text="Get detailed implementation guidance for mandatory requirements",
        type=SuggestionType.WORKFLOW,
        confidence=0.9,
        priority=Priority.HIGH,
        estimated_time="15-30 minutes",
    ),
    "procedure": FollowUpSuggestion(
        id="fs-procedure-workflow",
        text="Create step-by-step compliance procedure",
        type=SuggestionType.WORKFLOW,
        confidence=0.8,
        priority=Priority.MEDIUM,
        estimated_time="30-45 minutes",
    ),
    "jurisdictions": FollowUpSuggestion(
        id="fs-additional-jurisdictions",
        text="Check requirements in other jurisdictions",
        type=SuggestionType.ANALYSIS,
        confidence=0.7,
        priority=Priority.MEDIUM,
        estimated_time="10-15 minutes",
    ),
}

# ============================================================
# 자문 생성
# ============================================================

ADVISORY_TEMPLATES: tuple[AdvisoryTemplate, ...] = (
    AdvisoryTemplate(
        id="aml-risk-assessment",
        name="AML Risk Assessment Template",
        category="risk_assessment",
        template=(
            "Based on the analysis of {entity_type} in {jurisdiction}, the AML risk "
            "level is assessed as {risk_level}. Key risk factors include: "
            "{risk_factors}. Recommended mitigation measures: {mitigation_measures}."
        ),
        variables=("entity_type", "jurisdiction", "risk_level", "risk_factors", "mitigation_measures"),
        confidence=0.9,
    ),
    AdvisoryTemplate(
        id="kyc-procedure",
        name="KYC Procedure Template",
        category="compliance_procedure",
        template=(
            "For {client_type} onboarding in {jurisdiction}, implement the following "
            "KYC procedures: {procedures}. Required documentation: {documentation}. "
            "Enhanced due diligence triggers: {edd_triggers}."
        ),
        variables=("client_type", "jurisdiction", "procedures", "documentation", "edd_triggers"),
        confidence=0.85,
    ),
    AdvisoryTemplate(
        id="monitoring-framework",
        name="Transaction Monitoring Framework",
        category="monitoring",
        template=(
            "Establish transaction monitoring framework with the following components: "
            "{monitoring_components}. Risk indicators: {risk_indicators}. "
            "Escalation procedures: {escalation_procedures}."
        ),
        variables=("monitoring_components", "risk_indicators", "escalation_procedures"),
        confidence=0.88,
    ),
)

RISK_MODELS: dict[str, RiskModel] = {
    "high_risk_client": RiskModel(
        level="high",
        factors=(
            "PEP status",
            "High-risk jurisdiction",
            "Complex ownership structure",
            "Unusual transaction patterns",
        ),
        mitigation=(
            "Enhanced due diligence",
            "Senior management approval",
            "Ongoing monitoring",
            "Regular reviews",
        ),
        monitoring=(
            "Monthly transaction reviews",
            "Quarterly risk assessments",
            "Annual relationship reviews",
        ),
        escalation=(
            "Immediate escalation for suspicious activities",
            "Regular reporting to compliance officer",
        ),
    ),
    "standard_client": RiskModel(
        level="medium",
        factors=(
            "Standard business operations",
            "Established jurisdiction",
            "Clear ownership structure",
        ),
        mitigation=("Standard due diligence", "Regular monitoring", "Annual reviews"),
        monitoring=("Quarterly transaction reviews", "Annual risk assessments"),
        escalation=("Escalation for unusual patterns", "Regular compliance reporting"),
    ),
    "low_risk_client": RiskModel(
        level="low",
        factors=(
            "Low-risk jurisdiction",
            "Simple ownership structure",
            "Standard business activities",
        ),
        mitigation=("Basic due diligence", "Standard monitoring"),
        monitoring=("Annual reviews", "Exception-based monitoring"),
        escalation=("Escalation only for significant changes",),
    ),
}

RECOMMENDATIONS: dict[str, ComplianceRecommendation] = {
    "enhanced_due_diligence": ComplianceRecommendation(
        id="rec-enhanced-due-diligence",
        title="Implement Enhanced Due Diligence",
        description=(
            "Apply enhanced due diligence measures including additional documentation, "
            "senior management approval, and ongoing monitoring."
        ),
        priority="critical",
        category="immediate",
        effort="high",
        impact="high",
        dependencies=("Regulatory approval", "System updates", "Staff training"),
        timeline="1-2 weeks",
    ),
    "monitoring_framework": ComplianceRecommendation(
        id="rec-monitoring-framework",
        title="Establish Enhanced Monitoring Framework",
        description=(
            "Implement comprehensive transaction monitoring with real-time alerts "
            "and regular reviews."
        ),
        priority="high",
        category="short_term",
        effort="medium",
        impact="high",
        dependencies=("Technology infrastructure", "Compliance procedures"),
        timeline="2-4 weeks",
    ),
    "aml_policy_update": ComplianceRecommendation(
        id="rec-aml-policy-update",
        title="Update AML Policy and Procedures",
        description=(
            "Review and update AML policies to ensure compliance with current "
            "regulatory requirements."
        ),
        priority="medium",
        category="short_term",
        effort="medium",
        impact="medium",
        dependencies=("Legal review", "Management approval"),
        timeline="3-4 weeks",
    ),
    "kyc_automation": ComplianceRecommendation(
        id="rec-kyc-automation",
        title="Implement KYC Automation",
        description=(
            "Deploy automated KYC processes to improve efficiency and reduce manual errors."
        ),
        priority="medium",
        category="long_term",
        effort="high",
        impact="high",
        dependencies=("Technology selection", "System integration", "Staff training"),
        timeline="2-3 months",
    ),
    "baseline_review": ComplianceRecommendation(
        id="rec-baseline-review",
        title="Conduct Baseline Compliance Review",
        description=(
            "Review the current compliance program against applicable regulatory "
            "requirements to identify gaps before further changes."
        ),
        priority="low",
        category="short_term",
        effort="low",
        impact="medium",
        dependencies=("Compliance officer availability",),
        timeline="1-2 weeks",
    ),
}

PRIORITY_ORDER = {"critical": 4, "high": 3, "medium": 2, "low": 1}
IMPACT_ORDER = {"high": 3, "medium": 2, "low": 1}

ADVISORY_FOLLOW_UPS: tuple[FollowUpSuggestion, ...] = (
    FollowUpSuggestion(
        id="fs-implementation-plan",
        text="Create detailed implementation plan with timelines and resources",
        type=SuggestionType.WORKFLOW,
        confidence=0.9,
        priority=Priority.HIGH,
        estimated_time="1-2 hours",
    ),
    FollowUpSuggestion(
        id="fs-risk-monitoring",
        text="Set up ongoing risk monitoring and reporting framework",
        type=SuggestionType.WORKFLOW,
        confidence=0.8,
        priority=Priority.HIGH,
        estimated_time="2-3 hours",
    ),
    FollowUpSuggestion(
        id="fs-training-program",
        text="Develop compliance training program for staff",
        type=SuggestionType.WORKFLOW,
        confidence=0.7,
        priority=Priority.MEDIUM,
        estimated_time="4-6 hours",
    ),
    FollowUpSuggestion(
        id="fs-audit-prep",
        text="Prepare for regulatory audit and examination",
        type=SuggestionType.WORKFLOW,
        confidence=0.8,
        priority=Priority.MEDIUM,
        estimated_time="3-4 hours",
    ),
)

CRITICAL_ESCALATION_FOLLOW_UP = FollowUpSuggestion(
    id="fs-critical-escalation",
    text="Escalate to the compliance officer for immediate review of critical risk",
    type=SuggestionType.ESCALATION,
    confidence=0.95,
    priority=Priority.HIGH,
    estimated_time="30 minutes",
)

# ============================================================
# 신뢰도 평가
# ============================================================

SOURCE_RELIABILITY: dict[str, float] = {
    "CSSF": 0.95,
    "FATF": 0.98,
    "European Commission": 0.94,
    "Industry Best Practice": 0.75,
    "Internal Policy": 0.60,
}

CONFIDENCE_THRESHOLDS: dict[str, float] = {
    "high": 0.8,
    "medium": 0.6,
    "low": 0.4,
    "critical": 0.9,
}

EXPERT_CONSENSUS: dict[str, float] = {
    "aml_requirements": 0.85,
    "kyc_procedures": 0.80,
    "risk_assessment": 0.75,
    "monitoring_framework": 0.82,
    "reporting_obligations": 0.88,
}

FRAMEWORK_KEYWORDS: dict[str, tuple[str, ...]] = {
    "AML": ("aml", "anti-money laundering", "money laundering"),
    "KYC": ("kyc", "know your customer", "customer due diligence"),
    "CDD": ("cdd", "customer due diligence", "due diligence"),
    "EDD": ("edd", "enhanced due diligence"),
    "SOX": ("sox", "sarbanes-oxley"),
    "GDPR": ("gdpr", "data protection", "privacy"),
}

# 전체 신뢰도 가중치 (합계 1.0)
FACTOR_WEIGHTS: dict[str, float] = {
    "evidence_quality": 0.20,
    "source_reliability": 0.20,
    "response_completeness": 0.15,
    "regulatory_alignment": 0.15,
    "expert_consensus": 0.10,
    "temporal_relevance": 0.10,
    "jurisdiction_coverage": 0.05,
    "framework_compliance": 0.05,
}

SCORING_BEST_PRACTICES: tuple[str, ...] = (
    "Use authoritative regulatory sources",
    "Include recent and relevant evidence",
    "Ensure comprehensive coverage of requirements",
    "Validate against multiple jurisdictions where applicable",
)

SCORER_FOLLOW_UPS: tuple[FollowUpSuggestion, ...] = (
    FollowUpSuggestion(
        id="fs-confidence-calibration",
        text="Calibrate confidence scoring for specific use cases",
        type=SuggestionType.ANALYSIS,
        confidence=0.8,
        priority=Priority.MEDIUM,
        estimated_time="1-2 hours",
    ),
    FollowUpSuggestion(
        id="fs-source-validation",
        text="Validate and update source reliability database",
        type=SuggestionType.WORKFLOW,
        confidence=0.9,
        priority=Priority.HIGH,
        estimated_time="2-3 hours",
    ),
    FollowUpSuggestion(
        id="fs-expert-consensus",
        text="Update expert consensus data with latest industry input",
        type=SuggestionType.ANALYSIS,
        confidence=0.7,
        priority=Priority.MEDIUM,
        estimated_time="3-4 hours",
    ),
)
