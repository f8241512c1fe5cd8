"""공통 유틸리티 모듈.

로깅, 설정, 에러 처리 등 공통 기능을 제공합니다.
"""

from .config import get_config, reset_config
from .errors import (
    AgentError,
    AgentNotInitializedError,
    AgentProcessingError,
    ConfigError,
    EvidenceSearchError,
    InvalidResponseError,
    OrchestrationError,
    SynthesisError,
)
from .logger import get_logger, log_with_context, set_level

__all__ = [
    "get_logger",
    "log_with_context",
    "set_level",
    "get_config",
    "reset_config",
    "AgentError",
    "AgentNotInitializedError",
    "AgentProcessingError",
    "ConfigError",
    "EvidenceSearchError",
    "InvalidResponseError",
    "OrchestrationError",
    "SynthesisError",
]
