"""Orchestrator 테스트"""

import asyncio

import pytest
import pytest_asyncio

from src.agents.advisory_generator import AdvisoryGeneratorAgent
from src.agents.confidence_scorer import ConfidenceScorerAgent
from src.agents.models import AgentType, RiskTolerance
from src.agents.regulatory_parser import RegulatoryParserAgent
from src.orchestrator.models import StepStatus, SynthesisMethod
from src.orchestrator.orchestrator import Orchestrator
from src.orchestrator.synthesis import REGULATORY_SECTION_HEADER
from src.utils.config import OrchestratorSettings, reset_config
from src.utils.errors import AgentNotInitializedError, OrchestrationError, SynthesisError
from tests.mocks import StaticEvidenceProvider, StubAgent, make_context, make_evidence

PARSER = AgentType.REGULATORY_PARSER
GENERATOR = AgentType.ADVISORY_GENERATOR
SCORER = AgentType.CONFIDENCE_SCORER


def _stubs(**kwargs):
    return [StubAgent(agent_type, **kwargs) for agent_type in (PARSER, GENERATOR, SCORER)]


# Fixtures
@pytest.fixture
def settings():
    """기본 실행 정책 (환경 변수와 무관)."""
    return OrchestratorSettings()


@pytest_asyncio.fixture
async def orchestrator(settings):
    """기본 Agent 3종으로 초기화된 Orchestrator."""
    orchestrator = Orchestrator.create_default(settings=settings)
    await orchestrator.initialize()
    yield orchestrator
    await orchestrator.cleanup()


@pytest_asyncio.fixture
async def stub_orchestrator():
    """Stub Agent로 초기화된 Orchestrator."""
    orchestrator = Orchestrator(_stubs())
    await orchestrator.initialize()
    return orchestrator


class TestOrchestratorInit:
    """Orchestrator 생성/초기화 테스트"""

    def test_create_default_registers_three_agents(self, settings):
        """기본 팩토리는 Agent 3종을 등록해야 합니다."""
        # Act
        orchestrator = Orchestrator.create_default(settings=settings)

        # Assert
        assert isinstance(orchestrator.agents[PARSER], RegulatoryParserAgent)
        assert isinstance(orchestrator.agents[GENERATOR], AdvisoryGeneratorAgent)
        assert isinstance(orchestrator.agents[SCORER], ConfidenceScorerAgent)
        assert orchestrator.is_initialized is False

    def test_create_default_wires_collaborators(self):
        """근거 검색 협력자와 캐시 크기가 해당 Agent에만 전달되어야 합니다."""
        # Arrange
        provider = StaticEvidenceProvider()
        settings = OrchestratorSettings(parsing_cache_size=8, recommendation_cache_size=4)

        # Act
        orchestrator = Orchestrator.create_default(evidence_provider=provider, settings=settings)

        # Assert
        assert orchestrator.agents[PARSER].evidence_provider is provider
        assert orchestrator.agents[PARSER].parsing_cache.max_size == 8
        assert orchestrator.agents[GENERATOR].recommendation_cache.max_size == 4
        assert orchestrator.agents[GENERATOR].evidence_provider is None

    def test_create_default_reads_environment(self, monkeypatch):
        """settings를 생략하면 환경 변수 설정을 사용해야 합니다."""
        # Arrange
        monkeypatch.setenv("ORCHESTRATOR_STEP_MAX_RETRIES", "2")
        reset_config()

        # Act
        try:
            orchestrator = Orchestrator.create_default()
        finally:
            reset_config()

        # Assert
        assert orchestrator.executor.max_retries == 2

    def test_duplicate_agent_type_rejected(self):
        """같은 타입의 Agent를 두 번 등록할 수 없습니다."""
        with pytest.raises(ValueError):
            Orchestrator([StubAgent(PARSER), StubAgent(PARSER)])

    @pytest.mark.asyncio
    async def test_initialize_all_agents(self):
        """initialize()는 모든 Agent를 초기화해야 합니다."""
        # Arrange
        stubs = _stubs()
        orchestrator = Orchestrator(stubs)

        # Act
        await orchestrator.initialize()

        # Assert
        assert orchestrator.is_initialized is True
        assert all(stub.is_initialized for stub in stubs)

    @pytest.mark.asyncio
    async def test_initialize_fails_when_agent_unhealthy(self):
        """상태 확인에 실패한 Agent가 있으면 초기화가 실패해야 합니다."""
        # Arrange
        orchestrator = Orchestrator([StubAgent(PARSER), StubAgent(SCORER, healthy=False)])

        # Act & Assert
        with pytest.raises(OrchestrationError, match="confidence_scorer"):
            await orchestrator.initialize()

        assert orchestrator.is_initialized is False

    @pytest.mark.asyncio
    async def test_initialize_failure_waits_for_other_agents(self):
        """한 Agent 초기화가 실패해도 나머지 초기화가 끝난 뒤에 예외가 전달되어야 합니다."""
        # Arrange
        failing, slow = StubAgent(PARSER), StubAgent(GENERATOR)
        finished = []

        async def fail():
            raise RuntimeError("reference data unavailable")

        async def slow_initialize():
            await asyncio.sleep(0.05)
            slow.is_initialized = True
            finished.append(slow.agent_type)

        failing.initialize = fail
        slow.initialize = slow_initialize
        orchestrator = Orchestrator([failing, slow])

        # Act
        with pytest.raises(RuntimeError, match="reference data unavailable"):
            await orchestrator.initialize()

        # Assert
        assert finished == [GENERATOR]
        assert orchestrator.is_initialized is False

    @pytest.mark.asyncio
    async def test_cleanup_runs_for_every_agent_on_failure(self, stub_orchestrator):
        """한 Agent 정리가 실패해도 다른 Agent 정리는 수행되어야 합니다."""
        # Arrange
        async def broken_cleanup():
            raise RuntimeError("cleanup failed")

        stub_orchestrator.agents[PARSER].cleanup = broken_cleanup

        # Act
        with pytest.raises(RuntimeError, match="cleanup failed"):
            await stub_orchestrator.cleanup()

        # Assert
        assert stub_orchestrator.agents[GENERATOR].cleaned_up is True
        assert stub_orchestrator.agents[SCORER].cleaned_up is True


class TestProcessQuery:
    """process_query 테스트 (기본 Agent 사용)"""

    @pytest.mark.asyncio
    async def test_not_initialized(self, settings):
        """초기화 전에 호출하면 AgentNotInitializedError가 발생해야 합니다."""
        orchestrator = Orchestrator.create_default(settings=settings)

        with pytest.raises(AgentNotInitializedError):
            await orchestrator.process_query(make_context())

    @pytest.mark.asyncio
    async def test_regulatory_analysis(self, orchestrator):
        """규제 요건 질의는 regulatory_analysis 전략으로 가중 평균 종합됩니다."""
        # Arrange
        context = make_context("What are the KYC documentation requirements?", "Luxembourg")

        # Act
        result = await orchestrator.process_query(context)

        # Assert
        assert result.strategy == "regulatory_analysis"
        assert result.synthesis_method == SynthesisMethod.WEIGHTED_AVERAGE
        assert list(result.agent_contributions) == [PARSER.value, SCORER.value]
        assert result.final_response.content.startswith("[")
        assert result.confidence_factors is not None
        assert 0.0 <= result.quality_score <= 1.0
        assert result.processing_time_ms > 0
        assert all(s.status == StepStatus.COMPLETED for s in result.workflow.steps)

    @pytest.mark.asyncio
    async def test_standard_advisory_hierarchical(self, orchestrator):
        """일반 질의는 자문 생성 응답에 규제 분석 섹션을 붙입니다."""
        # Arrange
        context = make_context("How should we onboard a new fund?", "Luxembourg")

        # Act
        result = await orchestrator.process_query(context)

        # Assert
        generator = result.agent_contributions[GENERATOR.value]
        scorer = result.agent_contributions[SCORER.value]
        assert result.strategy == "standard_advisory"
        assert REGULATORY_SECTION_HEADER in result.final_response.content
        assert result.final_response.confidence == pytest.approx(
            min(generator.confidence, scorer.confidence)
        )
        assert " | " in result.final_response.reasoning

    @pytest.mark.asyncio
    async def test_high_confidence_parallel(self, orchestrator):
        """낮은 위험 허용도는 3개 Agent 병렬 실행 후 합의형 종합을 사용합니다."""
        # Arrange
        context = make_context(
            "What is critical AML risk for a PEP client?", "Luxembourg", risk_tolerance=RiskTolerance.LOW
        )

        # Act
        result = await orchestrator.process_query(context)

        # Assert
        contributions = result.agent_contributions
        assert result.strategy == "high_confidence"
        assert len(contributions) == 3
        assert result.final_response.confidence == pytest.approx(
            sum(r.confidence for r in contributions.values()) / 3
        )
        assert result.confidence_metrics.evidence_count == sum(
            len(r.evidence) for r in contributions.values()
        )

    @pytest.mark.asyncio
    async def test_no_frameworks_means_no_contributions(self, orchestrator):
        """모든 Agent가 컨텍스트를 거부하면 종합할 응답이 없어 실패합니다."""
        # Arrange
        context = make_context("How should we onboard a new fund?", frameworks=[])

        # Act
        with pytest.raises(OrchestrationError) as exc_info:
            await orchestrator.process_query(context)

        # Assert
        assert isinstance(exc_info.value.__cause__, SynthesisError)
        assert exc_info.value.strategy == "standard_advisory"
        assert all(s.status == StepStatus.SKIPPED for s in exc_info.value.workflow.steps)

    @pytest.mark.asyncio
    async def test_records_performance(self, orchestrator):
        """성공한 질의마다 전략별 처리 시간이 기록됩니다."""
        # Arrange
        context = make_context("What are the KYC documentation requirements?", "Luxembourg")

        # Act
        await orchestrator.process_query(context)
        await orchestrator.process_query(context)

        # Assert
        stats = orchestrator.get_performance_metrics()
        assert stats["regulatory_analysis"].count == 2
        assert stats["regulatory_analysis"].min <= stats["regulatory_analysis"].max

    @pytest.mark.asyncio
    async def test_concurrent_queries(self, orchestrator):
        """여러 질의를 동시에 처리해도 기록이 섞이지 않아야 합니다."""
        # Arrange
        contexts = [
            make_context("What are the KYC documentation requirements?", "Luxembourg"),
            make_context("Run a risk check on this client", "EU"),
            make_context("How should we onboard a new fund?", "UK"),
        ] * 3

        # Act
        results = await asyncio.gather(*(orchestrator.process_query(c) for c in contexts))

        # Assert
        assert len(results) == 9
        counts = {name: stats.count for name, stats in orchestrator.get_performance_metrics().items()}
        assert counts == {"regulatory_analysis": 3, "risk_assessment": 3, "standard_advisory": 3}

    @pytest.mark.asyncio
    async def test_evidence_provider_contributes(self):
        """근거 검색 협력자의 결과가 최종 응답 근거에 포함됩니다."""
        # Arrange
        provider = StaticEvidenceProvider([make_evidence(id="ev-search-1", jurisdiction="Global")])
        orchestrator = Orchestrator.create_default(evidence_provider=provider, settings=OrchestratorSettings())
        await orchestrator.initialize()

        # Act
        result = await orchestrator.process_query(
            make_context("What are the KYC documentation requirements?", "Luxembourg")
        )

        # Assert
        assert "ev-search-1" in [e.id for e in result.final_response.evidence]


class TestProcessQueryWithStubs:
    """process_query 테스트 (Stub Agent 사용)"""

    @pytest.mark.asyncio
    async def test_agent_failure_becomes_orchestration_error(self):
        """Agent 실패는 실패한 워크플로우를 담은 OrchestrationError가 됩니다."""
        # Arrange
        orchestrator = Orchestrator(
            [StubAgent(PARSER), StubAgent(GENERATOR, failures=1), StubAgent(SCORER)]
        )
        await orchestrator.initialize()

        # Act
        with pytest.raises(OrchestrationError) as exc_info:
            await orchestrator.process_query(make_context("How should we onboard a new fund?"))

        # Assert
        assert exc_info.value.workflow.failed_step.agent_type == GENERATOR
        assert orchestrator.get_performance_metrics() == {}

    @pytest.mark.asyncio
    async def test_below_threshold_still_returns(self):
        """신뢰도 기준 미달이어도 결과는 반환됩니다."""
        # Arrange
        orchestrator = Orchestrator(_stubs(confidence=0.3))
        await orchestrator.initialize()

        # Act
        result = await orchestrator.process_query(make_context())

        # Assert
        assert result.meets_threshold is False
        assert result.final_response.confidence < 0.8

    @pytest.mark.asyncio
    async def test_meets_threshold(self, stub_orchestrator):
        # Act
        result = await stub_orchestrator.process_query(make_context())

        # Assert - weighted_average, 두 응답 모두 0.8
        assert result.strategy == "regulatory_analysis"
        assert result.final_response.confidence == pytest.approx(0.8)
        assert result.meets_threshold is True

    @pytest.mark.asyncio
    async def test_non_scorer_agent_has_no_factors(self, stub_orchestrator):
        """ConfidenceScorerAgent가 아니면 8개 요인 평가를 생략합니다."""
        result = await stub_orchestrator.process_query(make_context())

        assert result.confidence_factors is None

    @pytest.mark.asyncio
    async def test_step_retry_setting_applied(self):
        """step_max_retries 설정이 워크플로우 실행에 적용됩니다."""
        # Arrange
        orchestrator = Orchestrator(
            [StubAgent(PARSER, failures=1), StubAgent(SCORER)],
            settings=OrchestratorSettings(step_max_retries=1),
        )
        await orchestrator.initialize()

        # Act
        result = await orchestrator.process_query(make_context())

        # Assert
        assert result.workflow.steps[0].attempts == 2


class TestHealthAndLifecycle:
    """health_check, cleanup, get_status 테스트"""

    @pytest.mark.asyncio
    async def test_health_check_before_initialize(self):
        assert await Orchestrator(_stubs()).health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_all_healthy(self, orchestrator):
        assert await orchestrator.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_one_unhealthy(self, stub_orchestrator):
        """Agent 하나라도 비정상이면 False입니다."""
        stub_orchestrator.agents[GENERATOR].healthy = False

        assert await stub_orchestrator.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_error_counts_as_unhealthy(self, stub_orchestrator):
        """상태 확인 중 예외는 비정상으로 처리합니다."""
        # Arrange
        async def broken():
            raise RuntimeError("health endpoint unreachable")

        stub_orchestrator.agents[SCORER].health_check = broken

        # Act & Assert
        assert await stub_orchestrator.health_check() is False

    @pytest.mark.asyncio
    async def test_cleanup(self, stub_orchestrator):
        """cleanup()은 모든 Agent를 정리하고 성능 기록을 비웁니다."""
        # Arrange
        await stub_orchestrator.process_query(make_context())

        # Act
        await stub_orchestrator.cleanup()

        # Assert
        assert stub_orchestrator.is_initialized is False
        assert all(agent.cleaned_up for agent in stub_orchestrator.agents.values())
        assert stub_orchestrator.get_performance_metrics() == {}

    @pytest.mark.asyncio
    async def test_get_status(self, orchestrator):
        """상태 조회 결과에 Agent, 전략, 설정, 성능 정보가 포함됩니다."""
        # Arrange
        await orchestrator.process_query(
            make_context("What are the KYC documentation requirements?", "Luxembourg")
        )

        # Act
        status = orchestrator.get_status()

        # Assert
        assert status["is_initialized"] is True
        assert set(status["agents"]) == {PARSER.value, GENERATOR.value, SCORER.value}
        assert status["agents"][PARSER.value]["worker_type"] == "RegulatoryParserAgent"
        assert "high_confidence" in status["strategies"]
        assert status["performance"]["regulatory_analysis"]["count"] == 1
        assert status["settings"]["step_timeout_multiplier"] == 2.0
