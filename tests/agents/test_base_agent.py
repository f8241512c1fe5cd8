"""BaseAgent 테스트

Agent 베이스 클래스의 생명주기, 응답 빌더, 예외 변환을 검증합니다.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from src.agents.base import (
    DEFAULT_FRAMEWORKS,
    DEFAULT_JURISDICTIONS,
    AdvisoryAgent,
    AgentResponseBuilder,
    BaseAgent,
    validate_response,
)
from src.agents.models import AgentCapabilities, AgentType, ConversationTurn
from src.utils.errors import (
    AgentNotInitializedError,
    AgentProcessingError,
    InvalidResponseError,
)
from tests.mocks import StaticEvidenceProvider, make_context, make_evidence, make_response


class MockAgent(BaseAgent):
    """테스트용 Mock Agent

    BaseAgent를 상속하여 추상 메서드를 구현합니다.
    """

    def __init__(self, behavior: str = "ok", **kwargs):
        super().__init__(
            agent_type=AgentType.REGULATORY_PARSER,
            capabilities=AgentCapabilities(
                supported_jurisdictions=DEFAULT_JURISDICTIONS,
                supported_frameworks=DEFAULT_FRAMEWORKS,
                max_query_length=50,
                response_time_ms=100,
                confidence_threshold=0.7,
            ),
            **kwargs,
        )
        self.behavior = behavior
        self.reference: dict[str, str] = {}
        self.load_count = 0

    async def _load_reference_data(self) -> None:
        self.load_count += 1
        self.reference["doc"] = "loaded"

    def _has_reference_data(self) -> bool:
        return bool(self.reference)

    def _clear_reference_data(self) -> None:
        self.reference.clear()

    async def _process(self, context, builder):
        if self.behavior == "crash":
            raise KeyError("missing-document")
        if self.behavior == "incomplete":
            builder.set_content("content only")
            return
        builder.set_content("Mock content").set_confidence(0.8).set_reasoning("Mock reasoning")


class TestAgentResponseBuilder:
    """AgentResponseBuilder 테스트"""

    def test_build_complete_response(self):
        response = (
            AgentResponseBuilder(AgentType.ADVISORY_GENERATOR)
            .set_content("content")
            .set_confidence(0.75)
            .set_reasoning("reasoning")
            .add_evidence(make_evidence())
            .add_assumption("assumption")
            .add_limitation("limitation")
            .build()
        )

        assert response.agent_type == "advisory_generator"
        assert response.id.startswith("advisory_generator-")
        assert response.confidence == 0.75
        assert len(response.evidence) == 1
        assert response.assumptions == ["assumption"]
        assert response.limitations == ["limitation"]

    def test_confidence_is_clamped(self):
        builder = AgentResponseBuilder(AgentType.ADVISORY_GENERATOR).set_confidence(3.0)

        assert builder.confidence == 1.0

    @pytest.mark.parametrize(
        ("missing", "message"),
        [
            ("content", "must have content"),
            ("confidence", "must have confidence score"),
            ("reasoning", "must have reasoning"),
        ],
    )
    def test_missing_required_field(self, missing, message):
        builder = AgentResponseBuilder(AgentType.CONFIDENCE_SCORER)
        if missing != "content":
            builder.set_content("content")
        if missing != "confidence":
            builder.set_confidence(0.5)
        if missing != "reasoning":
            builder.set_reasoning("reasoning")

        with pytest.raises(InvalidResponseError, match=message):
            builder.build()

    def test_ids_are_unique(self):
        ids = {AgentResponseBuilder(AgentType.REGULATORY_PARSER).id for _ in range(20)}

        assert len(ids) == 20


class TestValidateResponse:
    """validate_response 테스트"""

    def test_valid_response(self):
        response = make_response()

        assert validate_response(response) is response

    def test_blank_content_rejected(self):
        response = make_response().model_copy(update={"content": "   "})

        with pytest.raises(InvalidResponseError):
            validate_response(response)

    def test_non_response_rejected(self):
        with pytest.raises(InvalidResponseError):
            validate_response({"content": "dict"})


class TestBaseAgentLifecycle:
    """BaseAgent 생명주기 테스트"""

    def test_init_without_chat_client(self):
        """chat_client가 없으면 LLM 협력자도 없습니다."""
        agent = MockAgent()

        assert agent.agent is None
        assert agent.is_initialized is False

    def test_satisfies_protocol(self):
        assert isinstance(MockAgent(), AdvisoryAgent)

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self):
        agent = MockAgent()

        await agent.initialize()
        await agent.initialize()

        assert agent.is_initialized is True
        assert agent.load_count == 1

    @pytest.mark.asyncio
    async def test_health_check(self):
        agent = MockAgent()
        assert await agent.health_check() is False

        await agent.initialize()
        assert await agent.health_check() is True

    @pytest.mark.asyncio
    async def test_cleanup_returns_to_uninitialized(self):
        agent = MockAgent()
        await agent.initialize()

        await agent.cleanup()

        assert agent.is_initialized is False
        assert agent.reference == {}
        assert await agent.health_check() is False

    def test_get_status(self):
        status = MockAgent().get_status()

        assert status["agent_type"] == "regulatory_parser"
        assert status["worker_type"] == "MockAgent"
        assert status["is_initialized"] is False
        assert status["llm_enabled"] is False
        assert "EU" in status["capabilities"]["supported_jurisdictions"]


class TestCanHandle:
    """can_handle 테스트"""

    def test_supported_context(self):
        assert MockAgent().can_handle(make_context(query="AML obligations"))

    def test_unsupported_jurisdiction(self):
        assert not MockAgent().can_handle(make_context(query="AML", jurisdiction="Mars"))

    def test_no_framework_overlap(self):
        assert not MockAgent().can_handle(make_context(query="AML", frameworks=["HIPAA"]))

    def test_empty_frameworks(self):
        assert not MockAgent().can_handle(make_context(query="AML", frameworks=[]))

    def test_query_too_long(self):
        assert not MockAgent().can_handle(make_context(query="x" * 51))


class TestProcessQuery:
    """process_query 템플릿 메서드 테스트"""

    @pytest.mark.asyncio
    async def test_not_initialized(self):
        with pytest.raises(AgentNotInitializedError):
            await MockAgent().process_query(make_context())

    @pytest.mark.asyncio
    async def test_returns_complete_response(self):
        agent = MockAgent()
        await agent.initialize()

        response = await agent.process_query(make_context())

        assert response.content == "Mock content"
        assert response.confidence == 0.8
        assert response.processing_time_ms >= 0.0

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self):
        agent = MockAgent(behavior="crash")
        await agent.initialize()

        with pytest.raises(AgentProcessingError) as exc_info:
            await agent.process_query(make_context())

        assert exc_info.value.agent_type == "regulatory_parser"
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_incomplete_response_raises_invalid(self):
        agent = MockAgent(behavior="incomplete")
        await agent.initialize()

        with pytest.raises(InvalidResponseError):
            await agent.process_query(make_context())


class TestCollaborators:
    """근거 검색, LLM 협력자 테스트"""

    @pytest.mark.asyncio
    async def test_fetch_evidence_without_provider(self):
        assert await MockAgent()._fetch_evidence(make_context()) == []

    @pytest.mark.asyncio
    async def test_fetch_evidence_with_provider(self):
        provider = StaticEvidenceProvider([make_evidence()])
        agent = MockAgent(evidence_provider=provider)

        evidence = await agent._fetch_evidence(make_context(jurisdiction="Luxembourg"), top_k=3)

        assert len(evidence) == 1
        assert provider.calls[0][1:] == ("Luxembourg", 3)

    @pytest.mark.asyncio
    async def test_consult_llm_without_agent(self):
        assert await MockAgent()._consult_llm("prompt") is None

    @pytest.mark.asyncio
    async def test_consult_llm_extracts_text(self):
        agent = MockAgent()
        agent.agent = Mock()
        agent.agent.run = AsyncMock(return_value=Mock(text="commentary"))

        assert await agent._consult_llm("prompt") == "commentary"
        agent.agent.run.assert_awaited_once_with("prompt")

    @pytest.mark.asyncio
    async def test_consult_llm_timeout(self):
        async def slow_run(prompt):
            await asyncio.sleep(1)

        agent = MockAgent()
        agent.agent = Mock()
        agent.agent.run = slow_run

        with pytest.raises(asyncio.TimeoutError):
            await agent._consult_llm("prompt", timeout=0.01)

    def test_format_history(self):
        agent = MockAgent(max_history_turns=1)
        context = make_context(
            conversation_history=[
                ConversationTurn(id="t1", query="first", response="one"),
                ConversationTurn(id="t2", query="second", response="two"),
            ]
        )

        history = agent._format_history(context)

        assert "second" in history
        assert "first" not in history

    def test_format_empty_history(self):
        assert MockAgent()._format_history(make_context()) == "없음"
