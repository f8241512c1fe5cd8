"""커스텀 예외 클래스 정의.

프로젝트 전반에서 사용되는 예외 계층 구조를 제공합니다.
Agent 단계에서 발생한 오류는 Orchestrator 경계에서 OrchestrationError로 감싸서
호출자(API 레이어)에게 단일 실패 신호로 전달됩니다.
"""


class AgentError(Exception):
    """Agent 관련 모든 예외의 베이스 클래스."""

    pass


class ConfigError(AgentError):
    """설정 관련 예외.

    환경 변수 누락, 잘못된 설정값, 외부 클라이언트 초기화 실패 등의 경우 발생합니다.
    """

    pass


class AgentNotInitializedError(AgentError):
    """초기화되지 않은 Agent 또는 Orchestrator를 호출한 경우 발생합니다."""

    pass


class AgentProcessingError(AgentError):
    """Agent의 process_query 실행 실패.

    Attributes:
        agent_type: 실패한 Agent 타입
    """

    def __init__(self, message: str, agent_type: str | None = None):
        super().__init__(message)
        self.agent_type = agent_type


class InvalidResponseError(AgentError):
    """필수 필드(content, confidence, reasoning)가 누락된 응답.

    이런 응답은 Synthesis 단계로 전달되지 않습니다.
    """

    pass


class SynthesisError(AgentError):
    """응답 통합 실패.

    사용 가능한 Agent 응답이 하나도 없거나, 계층형 통합에 필요한
    기본(primary) 응답이 없는 경우 발생합니다.
    """

    pass


class OrchestrationError(AgentError):
    """쿼리 단위의 최상위 실패.

    Attributes:
        strategy: 선택된 전략 이름 (선택 전에 실패하면 None)
        workflow: 실패 시점의 워크플로우 기록 (있는 경우)
    """

    def __init__(self, message: str, strategy: str | None = None, workflow=None):
        super().__init__(message)
        self.strategy = strategy
        self.workflow = workflow


class EvidenceSearchError(AgentError):
    """근거 검색 관련 예외.

    Azure AI Search 연동 실패, 쿼리 오류 등의 경우 발생합니다.
    """

    pass
