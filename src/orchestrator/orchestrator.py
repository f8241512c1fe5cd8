"""Orchestrator - 전체 시스템 진입점."""

import asyncio
import time
from collections.abc import Iterable
from typing import Any

from ..agents.advisory_generator import AdvisoryGeneratorAgent
from ..agents.base import AdvisoryAgent, EvidenceProvider
from ..agents.confidence_scorer import ConfidenceMetrics, ConfidenceScorerAgent
from ..agents.models import AgentContext, AgentResponse, AgentType
from ..agents.regulatory_parser import RegulatoryParserAgent
from ..utils.config import OrchestratorSettings, get_config
from ..utils.errors import AgentNotInitializedError, OrchestrationError
from ..utils.logger import get_logger
from .metrics import (
    PerformanceTracker,
    calculate_confidence_metrics,
    calculate_quality_score,
)
from .models import AgentWorkflow, OrchestrationStrategy, PerformanceStats, SynthesisResult
from .strategies import STRATEGIES, select_strategy
from .synthesis import synthesize
from .workflow import WorkflowExecutor

logger = get_logger(__name__)


class Orchestrator:
    """전체 시스템 진입점.

    전략 선택, 워크플로우 실행, 응답 종합, 신뢰도/품질 평가를 통합합니다.
    서버(프로세스)당 하나를 만들어 호출자에게 참조로 전달합니다.

    플로우:
        1. 전략 선택 (select_strategy)
        2. 워크플로우 실행 (WorkflowExecutor)
        3. 응답 종합 (synthesize)
        4. 신뢰도 지표, 8개 요인 평가, 품질 점수 계산
        5. 전략별 처리 시간 기록
    """

    def __init__(
        self,
        agents: Iterable[AdvisoryAgent],
        settings: OrchestratorSettings | None = None,
    ):
        """Orchestrator를 초기화합니다.

        Args:
            agents: 등록할 Agent 목록 (Agent 타입당 하나)
            settings: 실행 정책 설정 (기본값: OrchestratorSettings())

        Raises:
            ValueError: 같은 타입의 Agent가 두 번 이상 주어진 경우
        """
        self.settings = settings or OrchestratorSettings()
        self.agents: dict[AgentType, AdvisoryAgent] = {}
        for agent in agents:
            if agent.agent_type in self.agents:
                raise ValueError(f"중복된 Agent 타입: {agent.agent_type.value}")
            self.agents[agent.agent_type] = agent

        self.executor = WorkflowExecutor(
            self.agents,
            step_timeout_multiplier=self.settings.step_timeout_multiplier,
            max_retries=self.settings.step_max_retries,
        )
        self.performance = PerformanceTracker(window=self.settings.metrics_window)
        self.is_initialized = False

        logger.info(f"Orchestrator 생성 완료: agents={[t.value for t in self.agents]}")

    async def initialize(self) -> None:
        """모든 Agent를 동시에 초기화하고 상태를 확인합니다.

        Raises:
            OrchestrationError: 상태 확인에 실패한 Agent가 있는 경우
            Exception: Agent 초기화 중 발생한 첫 번째 예외 (모든 초기화가 끝난 뒤 전달)
        """
        agents = list(self.agents.values())
        await self._gather_all("initialize", agents)

        results = await asyncio.gather(*(agent.health_check() for agent in agents))
        unhealthy = [a.agent_type.value for a, healthy in zip(agents, results) if not healthy]
        if unhealthy:
            raise OrchestrationError(f"Agent 상태 확인 실패: {unhealthy}")

        self.is_initialized = True
        logger.info("Orchestrator 초기화 완료")

    @staticmethod
    async def _gather_all(operation: str, agents: list[AdvisoryAgent]) -> None:
        """모든 Agent의 작업이 끝날 때까지 기다린 뒤 첫 번째 예외를 다시 발생시킵니다."""
        results = await asyncio.gather(
            *(getattr(agent, operation)() for agent in agents),
            return_exceptions=True,
        )
        errors = [(a, r) for a, r in zip(agents, results) if isinstance(r, BaseException)]
        for agent, error in errors:
            logger.error(f"Agent {operation} 실패: {agent.agent_type.value}, {error}")
        if errors:
            raise errors[0][1]

    def select_strategy(self, context: AgentContext) -> OrchestrationStrategy:
        return select_strategy(context)

    async def process_query(self, context: AgentContext) -> SynthesisResult:
        """질의를 처리하여 종합 결과를 반환합니다.

        Args:
            context: 질의 컨텍스트

        Returns:
            SynthesisResult

        Raises:
            AgentNotInitializedError: initialize() 전에 호출된 경우
            OrchestrationError: 단계 실패, 종합 실패 등 질의 단위 실패

        Example:
            >>> orchestrator = Orchestrator.create_default()
            >>> await orchestrator.initialize()
            >>> result = await orchestrator.process_query(context)
            >>> print(result.final_response.content)
        """
        if not self.is_initialized:
            raise AgentNotInitializedError("Orchestrator가 초기화되지 않았습니다")

        start = time.perf_counter()
        strategy = self.select_strategy(context)
        logger.info(
            f"전략 선택: {strategy.name} (parallel={strategy.parallel_execution}, "
            f"synthesis={strategy.synthesis_method.value}), query='{context.query[:50]}'"
        )

        workflow: AgentWorkflow | None = None
        try:
            workflow, contributions = await self.executor.execute(strategy, context)
            final_response = synthesize(strategy.synthesis_method, contributions)
            confidence_metrics = calculate_confidence_metrics(contributions, final_response)
            confidence_factors = self._score_final_response(final_response, context)
            quality_score = calculate_quality_score(contributions, final_response)
        except OrchestrationError:
            raise
        except Exception as e:
            logger.error(f"쿼리 처리 실패: strategy={strategy.name}, {e}", exc_info=True)
            raise OrchestrationError(
                f"Orchestration failed: {e}", strategy=strategy.name, workflow=workflow
            ) from e

        processing_time_ms = (time.perf_counter() - start) * 1000
        self.performance.record(strategy.name, processing_time_ms)

        meets_threshold = final_response.confidence >= strategy.confidence_threshold
        if not meets_threshold:
            logger.warning(
                f"신뢰도 기준 미달: strategy={strategy.name}, "
                f"confidence={final_response.confidence:.3f} < {strategy.confidence_threshold}"
            )

        logger.info(
            f"쿼리 처리 완료: strategy={strategy.name}, confidence={final_response.confidence:.3f}, "
            f"quality={quality_score:.3f}, time={processing_time_ms:.1f}ms"
        )

        return SynthesisResult(
            final_response=final_response,
            agent_contributions=contributions,
            confidence_metrics=confidence_metrics,
            confidence_factors=confidence_factors,
            synthesis_method=strategy.synthesis_method,
            processing_time_ms=processing_time_ms,
            quality_score=quality_score,
            strategy=strategy.name,
            meets_threshold=meets_threshold,
            workflow=workflow,
        )

    def _score_final_response(
        self, response: AgentResponse, context: AgentContext
    ) -> ConfidenceMetrics | None:
        scorer = self.agents.get(AgentType.CONFIDENCE_SCORER)
        if not isinstance(scorer, ConfidenceScorerAgent):
            return None
        return scorer.calculate_confidence_score(response, context)

    def get_performance_metrics(self) -> dict[str, PerformanceStats]:
        """전략 이름 -> 처리 시간 통계 (외부 모니터링용)."""
        return self.performance.snapshot()

    async def health_check(self) -> bool:
        """모든 Agent가 정상일 때만 True를 반환합니다."""
        if not self.is_initialized:
            return False

        results = await asyncio.gather(
            *(agent.health_check() for agent in self.agents.values()),
            return_exceptions=True,
        )
        for agent_type, result in zip(self.agents, results):
            if isinstance(result, Exception):
                logger.error(f"Agent 상태 확인 중 오류: {agent_type.value}, {result}")
                return False
            if not result:
                logger.warning(f"Agent 비정상: {agent_type.value}")
                return False
        return True

    async def cleanup(self) -> None:
        """모든 Agent를 정리하고 성능 기록을 비웁니다."""
        await self._gather_all("cleanup", list(self.agents.values()))
        self.performance.clear()
        self.is_initialized = False
        logger.info("Orchestrator 정리 완료")

    def get_status(self) -> dict[str, Any]:
        """Orchestrator의 현재 상태를 반환합니다."""
        return {
            "is_initialized": self.is_initialized,
            "agents": {
                agent_type.value: (
                    agent.get_status() if hasattr(agent, "get_status") else {"agent_type": agent_type.value}
                )
                for agent_type, agent in self.agents.items()
            },
            "strategies": list(STRATEGIES),
            "settings": self.settings.model_dump(),
            "performance": {
                name: stats.model_dump() for name, stats in self.get_performance_metrics().items()
            },
        }

    @classmethod
    def create_default(
        cls,
        chat_client: Any = None,
        evidence_provider: EvidenceProvider | None = None,
        settings: OrchestratorSettings | None = None,
    ) -> "Orchestrator":
        """기본 Agent 3종으로 Orchestrator를 생성합니다.

        Args:
            chat_client: Agent Framework ChatClient (자문 생성 Agent의 분석가 코멘트용, 선택)
            evidence_provider: 근거 검색 협력자 (규제 파서용, 선택)
            settings: 실행 정책 설정 (기본값: 환경 변수 설정)

        Returns:
            Orchestrator 인스턴스 (initialize() 호출 필요)

        Example:
            >>> from src.utils.config import get_chat_client
            >>> orchestrator = Orchestrator.create_default(chat_client=get_chat_client())
        """
        settings = settings or get_config().orchestrator

        agents = [
            RegulatoryParserAgent(
                evidence_provider=evidence_provider,
                cache_size=settings.parsing_cache_size,
            ),
            AdvisoryGeneratorAgent(
                chat_client=chat_client,
                cache_size=settings.recommendation_cache_size,
                max_history_turns=settings.max_history_turns,
            ),
            ConfidenceScorerAgent(),
        ]

        logger.info("기본 Orchestrator 생성 완료")
        return cls(agents, settings=settings)
