"""규제 파서 Agent

규제 문서에서 질의와 관련된 요건을 추출하고 의무/권고 수준으로 분류합니다.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict

from ..utils.logger import get_logger
from .base import (
    DEFAULT_FRAMEWORKS,
    DEFAULT_JURISDICTIONS,
    AgentResponseBuilder,
    BaseAgent,
    EvidenceProvider,
)
from .cache import LRUCache
from .models import AgentCapabilities, AgentContext, AgentType, Evidence, SourceType
from .reference_data import (
    KEYWORD_ALIASES,
    PARENT_JURISDICTIONS,
    PARSER_FOLLOW_UPS,
    REGULATORY_DOCUMENTS,
    RELEVANCE_KEYWORDS,
    RegulatoryDocument,
)

logger = get_logger(__name__)

Category = Literal["obligation", "prohibition", "condition", "procedure", "timeline"]
Severity = Literal["mandatory", "recommended", "optional"]

APPLICABLE_FRAMEWORKS = ("AML", "KYC", "CDD")

_SENTENCE_SPLIT = re.compile(r"[.!?]+")

_DOCUMENT_SOURCE_TYPES = {
    "regulation": SourceType.REGULATION,
    "directive": SourceType.REGULATION,
    "guidance": SourceType.GUIDANCE,
    "case_law": SourceType.CASE_LAW,
}

NO_REQUIREMENTS_MESSAGE = (
    "No specific regulatory requirements found for this query. Please provide more "
    "context or check if the jurisdiction and compliance frameworks are correctly specified."
)


class ParsedRequirement(BaseModel):
    """규제 문서에서 추출한 요건 한 건."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    category: Category
    severity: Severity
    applicability: tuple[str, ...]
    effective_date: str
    document_id: str


def categorize_requirement(text: str) -> Category:
    """요건 문장을 분류합니다. 금지 표현을 의무 표현보다 먼저 확인합니다."""
    lowered = text.lower()

    if any(k in lowered for k in ("shall not", "prohibited", "forbidden")):
        return "prohibition"
    if any(k in lowered for k in ("shall", "must", "required")):
        return "obligation"
    if any(k in lowered for k in ("if", "when", "provided that")):
        return "condition"
    if any(k in lowered for k in ("procedure", "process", "steps")):
        return "procedure"
    if any(k in lowered for k in ("within", "days", "timeline")):
        return "timeline"
    return "obligation"


def determine_severity(text: str) -> Severity:
    lowered = text.lower()

    if any(k in lowered for k in ("shall", "must", "required")):
        return "mandatory"
    if any(k in lowered for k in ("should", "recommended", "best practice")):
        return "recommended"
    return "optional"


def is_relevant(document: RegulatoryDocument, query: str) -> bool:
    """질의와 문서가 같은 규제 키워드(또는 동의어)를 공유하는지 확인합니다."""
    query_lower = query.lower()
    content_lower = document.content.lower()

    for keyword in RELEVANCE_KEYWORDS:
        if keyword not in query_lower:
            continue
        candidates = (keyword, *KEYWORD_ALIASES.get(keyword, ()))
        if any(candidate in content_lower for candidate in candidates):
            return True
    return False


class RegulatoryParserAgent(BaseAgent):
    """규제 파서 Agent

    관할권(및 상위 규제 체계, Global) 문서를 검색하여 질의와 관련된
    요건을 추출합니다. 파싱 결과는 (관할권, 질의) 단위로 LRU 캐시에 저장합니다.

    Examples:
        >>> agent = RegulatoryParserAgent()
        >>> await agent.initialize()
        >>> response = await agent.process_query(context)
        >>> print(response.content)
    """

    def __init__(
        self,
        evidence_provider: EvidenceProvider | None = None,
        cache_size: int = 256,
    ):
        super().__init__(
            agent_type=AgentType.REGULATORY_PARSER,
            capabilities=AgentCapabilities(
                supported_jurisdictions=DEFAULT_JURISDICTIONS,
                supported_frameworks=DEFAULT_FRAMEWORKS,
                max_query_length=2000,
                response_time_ms=3000,
                confidence_threshold=0.7,
            ),
            evidence_provider=evidence_provider,
        )
        self.documents_by_jurisdiction: dict[str, list[RegulatoryDocument]] = {}
        self.documents_by_id: dict[str, RegulatoryDocument] = {}
        self.parsing_cache: LRUCache[list[ParsedRequirement]] = LRUCache(cache_size)

    async def _load_reference_data(self) -> None:
        for document in REGULATORY_DOCUMENTS:
            self.documents_by_jurisdiction.setdefault(document.jurisdiction, []).append(document)
            self.documents_by_id[document.id] = document
        logger.info(f"규제 문서 {len(self.documents_by_id)}건 로드")

    def _has_reference_data(self) -> bool:
        return bool(self.documents_by_id)

    def _clear_reference_data(self) -> None:
        self.documents_by_jurisdiction.clear()
        self.documents_by_id.clear()
        self.parsing_cache.clear()

    async def _process(self, context: AgentContext, builder: AgentResponseBuilder) -> None:
        requirements = self.parse_requirements(context)

        evidence = [self._requirement_evidence(req, context) for req in requirements]
        evidence.extend(await self._fetch_evidence(context))

        mandatory = [r for r in requirements if r.severity == "mandatory"]
        recommended = [r for r in requirements if r.severity == "recommended"]
        jurisdictions = list(dict.fromkeys(e.jurisdiction for e in evidence))

        builder.set_content(self._build_content(requirements, mandatory, recommended, evidence, jurisdictions))
        builder.set_confidence(self._calculate_confidence(evidence))
        builder.set_reasoning(self._build_reasoning(mandatory, recommended, evidence, jurisdictions))

        for item in evidence:
            builder.add_evidence(item)

        builder.add_assumption("Current regulatory framework is up-to-date")
        builder.add_assumption("Query relates to standard financial institution operations")
        builder.add_assumption("Jurisdiction and compliance frameworks are correctly specified")

        builder.add_limitation("Analysis limited to available regulatory sources")
        builder.add_limitation("Does not include recent regulatory changes not yet in database")
        builder.add_limitation("May not cover all edge cases or specific scenarios")
        if len(evidence) < 3:
            builder.add_limitation("Limited regulatory sources available for this query")

        suggestions = []
        if mandatory:
            suggestions.append(PARSER_FOLLOW_UPS["mandatory"])
        if any(r.category == "procedure" for r in requirements):
            suggestions.append(PARSER_FOLLOW_UPS["procedure"])
        suggestions.append(PARSER_FOLLOW_UPS["jurisdictions"])
        for suggestion in sorted(suggestions, key=lambda s: s.confidence, reverse=True):
            builder.add_follow_up_suggestion(suggestion.model_copy())

    def parse_requirements(self, context: AgentContext) -> list[ParsedRequirement]:
        """관련 문서에서 요건을 추출합니다. 의무(mandatory) 요건이 먼저 옵니다.

        Args:
            context: 질의 컨텍스트

        Returns:
            파싱된 요건 목록 (캐시 적중 시 캐시된 목록)
        """
        cache_key = f"{context.jurisdiction}-{context.query}"
        cached = self.parsing_cache.get(cache_key)
        if cached is not None:
            logger.debug(f"파싱 캐시 적중: {cache_key[:60]}")
            return cached

        requirements: list[ParsedRequirement] = []
        for document in self._candidate_documents(context.jurisdiction):
            if is_relevant(document, context.query):
                requirements.extend(self._extract_requirements(document, context))

        # sorted()는 안정 정렬이므로 같은 등급 안에서는 문서 순서를 유지
        requirements = sorted(requirements, key=lambda r: r.severity != "mandatory")

        self.parsing_cache.set(cache_key, requirements)
        return requirements

    def _candidate_documents(self, jurisdiction: str) -> list[RegulatoryDocument]:
        scopes = [jurisdiction, *PARENT_JURISDICTIONS.get(jurisdiction, ()), "Global"]
        documents: list[RegulatoryDocument] = []
        for scope in dict.fromkeys(scopes):
            documents.extend(self.documents_by_jurisdiction.get(scope, []))
        return documents

    def _extract_requirements(
        self, document: RegulatoryDocument, context: AgentContext
    ) -> list[ParsedRequirement]:
        sentences = [s.strip() for s in _SENTENCE_SPLIT.split(document.content)]
        applicability = tuple(
            fw for fw in APPLICABLE_FRAMEWORKS if fw in context.compliance_frameworks
        )

        return [
            ParsedRequirement(
                id=f"{document.id}-req-{index}",
                text=sentence,
                category=categorize_requirement(sentence),
                severity=determine_severity(sentence),
                applicability=applicability,
                effective_date=document.effective_date,
                document_id=document.id,
            )
            for index, sentence in enumerate(s for s in sentences if len(s) > 10)
        ]

    def _requirement_evidence(self, req: ParsedRequirement, context: AgentContext) -> Evidence:
        document = self.documents_by_id[req.document_id]

        relevance = 0.5
        if req.severity == "mandatory":
            relevance += 0.3
        if any(fw in context.compliance_frameworks for fw in req.applicability):
            relevance += 0.2

        return Evidence(
            id=f"ev-{req.id}",
            source=document.title,
            snippet=req.text,
            jurisdiction=document.jurisdiction,
            timestamp=document.last_updated,
            trust_score=document.trust_score,
            relevance_score=min(1.0, relevance),
            url=document.url,
            source_type=_DOCUMENT_SOURCE_TYPES.get(document.type, SourceType.INDUSTRY_STANDARD),
            citation=f"{document.authority} {document.title}",
            last_updated=document.last_updated,
        )

    @staticmethod
    def _calculate_confidence(evidence: list[Evidence]) -> float:
        if not evidence:
            return 0.1

        avg_trust = sum(e.trust_score for e in evidence) / len(evidence)
        avg_relevance = sum(e.relevance_score for e in evidence) / len(evidence)
        coverage = min(1.0, len(evidence) / 5)
        return avg_trust * 0.4 + avg_relevance * 0.4 + coverage * 0.2

    @staticmethod
    def _build_content(
        requirements: list[ParsedRequirement],
        mandatory: list[ParsedRequirement],
        recommended: list[ParsedRequirement],
        evidence: list[Evidence],
        jurisdictions: list[str],
    ) -> str:
        if not requirements and not evidence:
            return NO_REQUIREMENTS_MESSAGE

        lines = ["Based on regulatory analysis, the following requirements apply:", ""]

        if mandatory:
            lines.append("**Mandatory Requirements:**")
            lines.extend(f"{i}. {req.text}" for i, req in enumerate(mandatory, 1))
            lines.append("")

        if recommended:
            lines.append("**Recommended Practices:**")
            lines.extend(f"{i}. {req.text}" for i, req in enumerate(recommended, 1))
            lines.append("")

        lines.append(f"**Evidence Sources:** {len(evidence)} regulatory documents analyzed")
        lines.append(f"**Jurisdictions Covered:** {', '.join(jurisdictions)}")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _build_reasoning(
        mandatory: list[ParsedRequirement],
        recommended: list[ParsedRequirement],
        evidence: list[Evidence],
        jurisdictions: list[str],
    ) -> str:
        reasoning = (
            f"Analysis based on {len(evidence)} regulatory sources across "
            f"{len(jurisdictions)} jurisdictions. "
            f"Found {len(mandatory)} mandatory requirements and "
            f"{len(recommended)} recommended practices. "
        )
        if evidence:
            avg_trust = sum(e.trust_score for e in evidence) / len(evidence)
            reasoning += f"Average source trust score: {avg_trust * 100:.1f}%. "
        return reasoning + "Confidence level reflects the quality and relevance of regulatory sources."
