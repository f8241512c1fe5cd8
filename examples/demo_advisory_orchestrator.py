#!/usr/bin/env python3
"""Orchestrator 데모 스크립트

컴플라이언스 자문 Orchestrator의 동작을 시연합니다.
4가지 전략이 각각 선택되도록 구성한 질의를 처리하고 결과를 출력합니다.

실행 방법:
    python examples/demo_advisory_orchestrator.py

환경 변수 (모두 선택):
    - AZURE_OPENAI_ENDPOINT: 설정 시 자문 생성 Agent가 분석가 코멘트를 추가
    - AZURE_SEARCH_ENDPOINT: 설정 시 규제 파서가 Azure AI Search 근거를 함께 사용
    - LOG_LEVEL (기본값: INFO)
"""

import asyncio
import os
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv(project_root / ".env")

from src.agents.models import AgentContext, RiskTolerance, UserRole
from src.agents.tools import AzureSearchEvidenceProvider
from src.orchestrator import Orchestrator, SynthesisResult
from src.utils.config import get_chat_client, get_config
from src.utils.errors import ConfigError, OrchestrationError
from src.utils.logger import get_logger, set_level

logger = get_logger(__name__)


DEMO_CONTEXTS = [
    {
        "description": "규제 요건 질의 (regulatory_analysis)",
        "context": AgentContext(
            query="What are the KYC documentation requirements for corporate clients?",
            jurisdiction="Luxembourg",
            compliance_frameworks=["KYC", "AML"],
        ),
    },
    {
        "description": "위험 평가 질의 (risk_assessment)",
        "context": AgentContext(
            query="Run a risk assessment for a cross-border payment client",
            jurisdiction="EU",
            compliance_frameworks=["AML", "CDD"],
        ),
    },
    {
        "description": "일반 자문 질의 (standard_advisory)",
        "context": AgentContext(
            query="How should we onboard a new fund administrator?",
            jurisdiction="UK",
            compliance_frameworks=["AML", "KYC"],
        ),
    },
    {
        "description": "컴플라이언스 담당자 질의 (high_confidence)",
        "context": AgentContext(
            query="Which enhanced due diligence steps apply to a PEP client?",
            jurisdiction="Singapore",
            compliance_frameworks=["AML", "EDD"],
            risk_tolerance=RiskTolerance.LOW,
            user_role=UserRole.COMPLIANCE_OFFICER,
        ),
    },
]


def print_separator(char: str = "=", length: int = 80) -> None:
    print(char * length)


def print_header(title: str) -> None:
    print_separator()
    print(f"  {title}")
    print_separator()
    print()


def print_result(result: SynthesisResult) -> None:
    """종합 결과를 출력합니다."""
    response = result.final_response

    print(f"🧭 전략: {result.strategy} ({result.synthesis_method.value})")
    print(f"   참여 Agent: {', '.join(result.agent_contributions)}")
    print()

    print("💬 응답:")
    print("-" * 80)
    print(response.content)
    print()

    print("📊 지표:")
    print(f"   - 신뢰도: {response.confidence:.3f} (기준 충족: {result.meets_threshold})")
    print(f"   - 품질 점수: {result.quality_score:.3f}")
    print(f"   - 신뢰도 분산: {result.confidence_metrics.confidence_variance:.4f}")
    if result.confidence_factors is not None:
        print(f"   - 8개 요인 종합 점수: {result.confidence_factors.overall_score:.3f}")
    print(f"   - 처리 시간: {result.processing_time_ms:.1f}ms")
    print()

    if response.evidence:
        print(f"📚 근거: {len(response.evidence)}건")
        for i, evidence in enumerate(response.evidence[:3], 1):
            print(f"   {i}. {evidence.citation} ({evidence.jurisdiction}, trust={evidence.trust_score:.2f})")
        print()

    if response.follow_up_suggestions:
        print("➡️  후속 제안:")
        for suggestion in response.follow_up_suggestions[:3]:
            print(f"   - [{suggestion.priority.value}] {suggestion.text}")
        print()


def build_orchestrator() -> Orchestrator:
    """환경 변수에 따라 협력자를 붙여 Orchestrator를 생성합니다."""
    chat_client = None
    if os.getenv("AZURE_OPENAI_ENDPOINT"):
        chat_client = get_chat_client()
        print("   ✓ Azure OpenAI ChatClient 연결")

    evidence_provider = None
    if os.getenv("AZURE_SEARCH_ENDPOINT"):
        evidence_provider = AzureSearchEvidenceProvider.from_config()
        print("   ✓ Azure AI Search 근거 검색 연결")

    return Orchestrator.create_default(chat_client=chat_client, evidence_provider=evidence_provider)


async def run_demo() -> None:
    """데모를 실행합니다."""
    print_header("🏛️  Compliance Advisory Orchestrator 데모")

    print("🔧 초기화 중...")
    try:
        orchestrator = build_orchestrator()
        await orchestrator.initialize()
        print("   ✓ Orchestrator 초기화 완료")
        print()
    except (ConfigError, OrchestrationError) as e:
        print(f"❌ 초기화 실패: {e}")
        logger.exception("초기화 중 에러 발생")
        sys.exit(1)

    for i, item in enumerate(DEMO_CONTEXTS, 1):
        context = item["context"]
        print(f"\n📝 질의 {i}/{len(DEMO_CONTEXTS)}: {item['description']}")
        print(f"   질문: {context.query}")
        print(f"   관할권: {context.jurisdiction}, 프레임워크: {', '.join(context.compliance_frameworks)}")
        print()

        try:
            result = await orchestrator.process_query(context)
            print_result(result)
        except OrchestrationError as e:
            print(f"❌ 질의 처리 실패: {e}")
            if e.workflow is not None:
                for step in e.workflow.summary():
                    print(f"   - {step['agent']}: {step['status']} {step['error'] or ''}")
            continue

        print_separator("-")

    print_header("⏱️  전략별 처리 시간")
    for name, stats in orchestrator.get_performance_metrics().items():
        print(f"   {name}: avg={stats.average:.1f}ms, min={stats.min:.1f}ms, max={stats.max:.1f}ms (n={stats.count})")
    print()

    await orchestrator.cleanup()


def main() -> None:
    """메인 함수."""
    try:
        set_level(get_config().log_level)
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        print("\n\n⚠️  사용자가 중단했습니다.")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ 예상치 못한 에러 발생: {e}")
        logger.exception("데모 실행 중 에러")
        sys.exit(1)


if __name__ == "__main__":
    main()
