"""응답 종합.

여러 Agent의 응답을 전략의 종합 방식에 따라 하나의 응답으로 합칩니다.
"""

import time
import uuid
from collections.abc import Callable, Mapping

from ..agents.models import AgentResponse, AgentType, clamp_unit
from ..utils.errors import SynthesisError
from ..utils.logger import get_logger
from .models import SynthesisMethod

logger = get_logger(__name__)

Contributions = Mapping[str, AgentResponse]

REGULATORY_SECTION_HEADER = "\n\n## Regulatory Analysis\n\n"


def combine_reasoning(contributions: Contributions) -> str:
    """각 Agent의 reasoning을 'agent: reasoning' 형식으로 ' | '로 연결합니다."""
    return " | ".join(f"{agent}: {response.reasoning}" for agent, response in contributions.items())


def _merged(base: AgentResponse, contributions: Contributions, **updates) -> AgentResponse:
    updates["confidence"] = clamp_unit(updates.get("confidence", base.confidence))
    updates["reasoning"] = combine_reasoning(contributions)
    updates["id"] = f"synthesis-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
    # model_copy는 얕은 복사이므로 기여 응답과 리스트를 공유하지 않도록 새로 만듦
    for field in ("evidence", "assumptions", "limitations", "follow_up_suggestions"):
        updates.setdefault(field, list(getattr(base, field)))
    return base.model_copy(update=updates)


def _require(contributions: Contributions, method: SynthesisMethod) -> list[AgentResponse]:
    if not contributions:
        raise SynthesisError(f"No agent responses available for {method.value} synthesis")
    return list(contributions.values())


def hierarchical_synthesis(contributions: Contributions) -> AgentResponse:
    """자문 생성 응답을 기본으로 하고 규제 분석을 하위 섹션으로 붙입니다.

    신뢰도는 신뢰도 평가 응답이 있으면 min(generator, scorer), 없으면 generator 값입니다.

    Raises:
        SynthesisError: 응답이 없거나 자문 생성 응답이 없는 경우
    """
    _require(contributions, SynthesisMethod.HIERARCHICAL)

    advisory = contributions.get(AgentType.ADVISORY_GENERATOR.value)
    if advisory is None:
        raise SynthesisError("Primary advisory response not available")

    regulatory = contributions.get(AgentType.REGULATORY_PARSER.value)
    scorer = contributions.get(AgentType.CONFIDENCE_SCORER.value)

    content = advisory.content
    evidence = list(advisory.evidence)
    suggestions = list(advisory.follow_up_suggestions)
    if regulatory is not None:
        content += REGULATORY_SECTION_HEADER + regulatory.content
        evidence.extend(regulatory.evidence)
        suggestions.extend(regulatory.follow_up_suggestions)

    confidence = advisory.confidence
    if scorer is not None:
        confidence = min(advisory.confidence, scorer.confidence)

    return _merged(
        advisory,
        contributions,
        content=content,
        evidence=evidence,
        follow_up_suggestions=suggestions,
        confidence=confidence,
    )


def consensus_synthesis(contributions: Contributions) -> AgentResponse:
    """가장 신뢰도가 높은 응답을 기본으로 하고 모든 근거와 제안을 합칩니다.

    신뢰도는 개별 신뢰도의 산술 평균입니다. 동률이면 먼저 나온 응답이 기본입니다.
    """
    responses = _require(contributions, SynthesisMethod.CONSENSUS)

    base = max(responses, key=lambda r: r.confidence)
    average = sum(r.confidence for r in responses) / len(responses)

    return _merged(
        base,
        contributions,
        evidence=[e for r in responses for e in r.evidence],
        follow_up_suggestions=[s for r in responses for s in r.follow_up_suggestions],
        confidence=average,
    )


def weighted_average_synthesis(contributions: Contributions) -> AgentResponse:
    """각 응답 앞에 신뢰도 비중을 붙여 연결합니다.

    신뢰도는 sum(c^2) / sum(c)로, 신뢰도가 높은 응답에 더 큰 비중을 줍니다.
    모든 신뢰도가 0이면 비중은 균등, 신뢰도는 0입니다.
    """
    responses = _require(contributions, SynthesisMethod.WEIGHTED_AVERAGE)

    total = sum(r.confidence for r in responses)
    if total > 0:
        weights = [r.confidence / total for r in responses]
        confidence = sum(r.confidence * r.confidence for r in responses) / total
    else:
        weights = [1 / len(responses)] * len(responses)
        confidence = 0.0

    content = "".join(
        f"[{weight * 100:.0f}%] {response.content}\n\n"
        for weight, response in zip(weights, responses)
    )

    return _merged(
        responses[0],
        contributions,
        content=content,
        evidence=[e for r in responses for e in r.evidence],
        follow_up_suggestions=[s for r in responses for s in r.follow_up_suggestions],
        confidence=confidence,
    )


def hybrid_synthesis(contributions: Contributions) -> AgentResponse:
    """계층형 결과의 본문에 합의형 결과의 근거와 제안을 붙이고 두 신뢰도를 평균합니다."""
    hierarchical = hierarchical_synthesis(contributions)
    consensus = consensus_synthesis(contributions)

    return _merged(
        hierarchical,
        contributions,
        evidence=list(consensus.evidence),
        follow_up_suggestions=list(consensus.follow_up_suggestions),
        confidence=(hierarchical.confidence + consensus.confidence) / 2,
    )


SYNTHESIZERS: dict[SynthesisMethod, Callable[[Contributions], AgentResponse]] = {
    SynthesisMethod.HIERARCHICAL: hierarchical_synthesis,
    SynthesisMethod.CONSENSUS: consensus_synthesis,
    SynthesisMethod.WEIGHTED_AVERAGE: weighted_average_synthesis,
    SynthesisMethod.HYBRID: hybrid_synthesis,
}


def synthesize(method: SynthesisMethod, contributions: Contributions) -> AgentResponse:
    """종합 방식에 맞는 함수로 응답을 합칩니다.

    Args:
        method: 종합 방식
        contributions: Agent 타입별 응답

    Returns:
        종합 응답

    Raises:
        SynthesisError: 응답이 없거나 해당 방식에 필요한 응답이 없는 경우
    """
    method = SynthesisMethod(method)
    response = SYNTHESIZERS[method](contributions)
    logger.info(
        f"응답 종합 완료: method={method.value}, agents={list(contributions)}, "
        f"confidence={response.confidence:.3f}"
    )
    return response
