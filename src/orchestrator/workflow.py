"""워크플로우 실행.

전략의 Agent 순서대로 단계를 만들고 순차 또는 병렬로 실행합니다.
모든 단계는 Agent 선언 응답시간에 비례한 타임아웃 안에서 실행됩니다.
"""

import asyncio
import logging
import uuid
from collections.abc import Mapping
from datetime import datetime

from ..agents.base import AdvisoryAgent, validate_response
from ..agents.models import AgentContext, AgentResponse, AgentType
from ..utils.errors import OrchestrationError
from ..utils.logger import get_logger, log_with_context
from .models import AgentWorkflow, OrchestrationStrategy, StepStatus, WorkflowStep

logger = get_logger(__name__)


class StepFailedError(Exception):
    """단계 실패. execute()에서 OrchestrationError로 변환됩니다."""

    def __init__(self, step: WorkflowStep):
        super().__init__(f"Agent {step.agent_type.value} failed: {step.error}")
        self.step = step


class WorkflowExecutor:
    """전략 하나를 실행하여 Agent 응답을 모읍니다.

    - 순차 실행: 선언 순서대로 실행하고 첫 실패에서 중단합니다. 이후 단계는 pending으로 남습니다.
    - 병렬 실행: 모든 단계를 동시에 실행하고 전부 끝날 때까지 기다립니다.
      하나라도 실패하면 모든 상태를 기록한 뒤 질의를 실패시킵니다.
    - can_handle이 False인 Agent는 skipped로 표시하고 응답에서 제외합니다 (실패 아님).

    Attributes:
        agents: Agent 타입별 Agent
        step_timeout_multiplier: 선언 응답시간에 곱할 타임아웃 배수
        max_retries: 실패한 호출의 최대 재시도 횟수
    """

    def __init__(
        self,
        agents: Mapping[AgentType, AdvisoryAgent],
        step_timeout_multiplier: float = 2.0,
        max_retries: int = 0,
    ):
        self.agents = agents
        self.step_timeout_multiplier = step_timeout_multiplier
        self.max_retries = max_retries

    def create_workflow(self, strategy: OrchestrationStrategy) -> AgentWorkflow:
        """전략의 Agent 순서로 새 워크플로우를 만듭니다."""
        workflow_id = f"wf-{strategy.name}-{uuid.uuid4().hex[:8]}"
        return AgentWorkflow(
            id=workflow_id,
            strategy=strategy.name,
            steps=[
                WorkflowStep(id=f"{workflow_id}-step-{i}", agent_type=agent_type)
                for i, agent_type in enumerate(strategy.agent_sequence)
            ],
        )

    async def execute(
        self, strategy: OrchestrationStrategy, context: AgentContext
    ) -> tuple[AgentWorkflow, dict[str, AgentResponse]]:
        """전략을 실행합니다.

        Args:
            strategy: 실행할 전략
            context: 질의 컨텍스트

        Returns:
            (워크플로우 실행 기록, Agent 타입별 응답). 응답은 전략 순서를 따릅니다.

        Raises:
            OrchestrationError: 단계가 실패한 경우 (workflow에 실패 기록 포함)
        """
        workflow = self.create_workflow(strategy)
        logger.info(
            f"워크플로우 시작: id={workflow.id}, steps={len(workflow.steps)}, "
            f"parallel={strategy.parallel_execution}"
        )

        try:
            if strategy.parallel_execution:
                await self._execute_parallel(workflow, context)
            else:
                await self._execute_sequential(workflow, context)
        except StepFailedError as e:
            logger.error(f"워크플로우 실패: id={workflow.id}, {e}")
            raise OrchestrationError(str(e), strategy=strategy.name, workflow=workflow) from e

        contributions = {
            step.agent_type.value: step.output
            for step in workflow.steps
            if step.status == StepStatus.COMPLETED and step.output is not None
        }
        logger.info(f"워크플로우 완료: id={workflow.id}, contributions={list(contributions)}")
        return workflow, contributions

    async def _execute_sequential(self, workflow: AgentWorkflow, context: AgentContext) -> None:
        for step in workflow.steps:
            await self._run_step(step, context)

    async def _execute_parallel(self, workflow: AgentWorkflow, context: AgentContext) -> None:
        results = await asyncio.gather(
            *(self._run_step(step, context) for step in workflow.steps),
            return_exceptions=True,
        )

        failures = []
        for result in results:
            if isinstance(result, StepFailedError):
                failures.append(result)
            elif isinstance(result, BaseException):
                raise result

        if failures:
            raise failures[0]

    async def _run_step(self, step: WorkflowStep, context: AgentContext) -> AgentResponse | None:
        """단계 하나를 실행합니다. 상태와 시각은 step에 기록됩니다.

        Raises:
            StepFailedError: 등록되지 않은 Agent, 처리 실패, 타임아웃, 잘못된 응답
        """
        agent = self.agents.get(step.agent_type)
        if agent is None:
            now = datetime.now()
            step.started_at, step.ended_at = now, now
            step.status = StepStatus.FAILED
            step.error = f"Agent {step.agent_type.value} not registered"
            raise StepFailedError(step)

        if not agent.can_handle(context):
            step.status = StepStatus.SKIPPED
            log_with_context(
                logger, logging.WARNING, "Agent가 컨텍스트를 처리할 수 없어 건너뜀",
                agent=step.agent_type.value, jurisdiction=context.jurisdiction,
            )
            return None

        timeout = agent.capabilities.response_time_ms * self.step_timeout_multiplier / 1000
        step.status = StepStatus.RUNNING
        step.started_at = datetime.now()

        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 2):
            step.attempts = attempt
            try:
                response = await asyncio.wait_for(agent.process_query(context), timeout=timeout)
                validate_response(response)
            except asyncio.TimeoutError as e:
                last_error = e
                step.error = f"timed out after {timeout:.1f}s"
            except Exception as e:
                last_error = e
                step.error = str(e) or type(e).__name__
            else:
                step.ended_at = datetime.now()
                step.status = StepStatus.COMPLETED
                step.error = None
                step.output = response
                log_with_context(
                    logger, logging.INFO, "Agent 단계 완료",
                    agent=step.agent_type.value, status=step.status.value,
                    attempts=attempt, duration_ms=f"{step.duration_ms:.1f}",
                    confidence=f"{response.confidence:.2f}",
                )
                return response

            if attempt <= self.max_retries:
                logger.warning(
                    f"Agent {step.agent_type.value} 호출 실패 ({attempt}회차): {step.error}, 재시도 중..."
                )

        step.ended_at = datetime.now()
        step.status = StepStatus.FAILED
        log_with_context(
            logger, logging.ERROR, "Agent 단계 실패",
            agent=step.agent_type.value, status=step.status.value,
            attempts=step.attempts, duration_ms=f"{step.duration_ms:.1f}", error=step.error,
        )
        raise StepFailedError(step) from last_error
