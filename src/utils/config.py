"""애플리케이션 설정 관리.

환경 변수를 로드하고 Azure 클라이언트(검색, 채팅)를 초기화합니다.
"""

from typing import Any

from azure.identity import DefaultAzureCredential
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

# .env 파일 로드
load_dotenv()


class AzureOpenAISettings(BaseSettings):
    """Azure OpenAI 설정 (LLM 협력자)."""

    model_config = SettingsConfigDict(env_prefix="AZURE_OPENAI_")

    endpoint: str = Field(default="", description="Azure OpenAI 엔드포인트")
    api_key: str | None = Field(default=None, description="Azure OpenAI API 키")
    deployment_name: str = Field(default="gpt-4o", description="배포된 모델 이름")
    api_version: str = Field(default="2024-10-21", description="API 버전")


class AzureSearchSettings(BaseSettings):
    """Azure AI Search 설정 (근거 검색 협력자)."""

    model_config = SettingsConfigDict(env_prefix="AZURE_SEARCH_")

    endpoint: str = Field(default="", description="Azure AI Search 엔드포인트")
    api_key: str | None = Field(default=None, description="Azure AI Search API 키")
    index_name: str = Field(
        default="regulatory-evidence", description="규제 근거 검색 인덱스 이름"
    )


class OrchestratorSettings(BaseSettings):
    """Orchestrator 실행 정책 설정."""

    model_config = SettingsConfigDict(env_prefix="ORCHESTRATOR_")

    step_timeout_multiplier: float = Field(
        default=2.0,
        gt=0,
        description="Agent 선언 응답시간(response_time_ms)에 곱할 단계 타임아웃 배수",
    )
    step_max_retries: int = Field(
        default=0, ge=0, description="실패한 Agent 호출의 최대 재시도 횟수"
    )
    recommendation_cache_size: int = Field(
        default=256, ge=1, description="권고안 LRU 캐시 최대 항목 수"
    )
    parsing_cache_size: int = Field(
        default=256, ge=1, description="규제 요건 파싱 LRU 캐시 최대 항목 수"
    )
    metrics_window: int = Field(
        default=100, ge=1, description="전략별로 유지할 처리시간 측정값 수"
    )
    max_history_turns: int = Field(
        default=5, ge=0, description="LLM 프롬프트에 포함할 최근 대화 턴 수"
    )


class AppConfig(BaseSettings):
    """애플리케이션 전체 설정."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # 알 수 없는 환경변수 무시
    )

    # 하위 설정
    azure_openai: AzureOpenAISettings = Field(
        default_factory=lambda: AzureOpenAISettings()
    )
    azure_search: AzureSearchSettings = Field(
        default_factory=lambda: AzureSearchSettings()
    )
    orchestrator: OrchestratorSettings = Field(
        default_factory=lambda: OrchestratorSettings()
    )

    # 기타 설정
    debug: bool = Field(default=False, description="디버그 모드")
    log_level: str = Field(default="INFO", description="로그 레벨")


# 전역 설정 인스턴스
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """애플리케이션 설정을 반환합니다.

    최초 호출 시 한 번 로드하고 이후에는 같은 인스턴스를 반환합니다.

    Returns:
        AppConfig 인스턴스

    Raises:
        ConfigError: 설정값 검증에 실패한 경우

    Example:
        >>> config = get_config()
        >>> print(config.orchestrator.step_timeout_multiplier)
    """
    global _config

    if _config is None:
        try:
            _config = AppConfig()
            logger.info("애플리케이션 설정 로드 완료")
        except Exception as e:
            raise ConfigError(f"설정 로드 실패: {e}") from e

    return _config


def reset_config() -> None:
    """캐시된 설정을 제거합니다. (테스트용)"""
    global _config
    _config = None


def get_azure_credential() -> DefaultAzureCredential:
    """Azure 인증 자격 증명을 반환합니다.

    환경에 따라 적절한 인증 방식을 자동으로 선택합니다:
    - 로컬: Azure CLI 인증
    - Azure: Managed Identity

    Returns:
        DefaultAzureCredential 인스턴스
    """
    return DefaultAzureCredential()


def get_chat_client() -> Any:
    """Agent Framework용 Azure OpenAI ChatClient를 반환합니다.

    Returns:
        AzureOpenAIChatClient 인스턴스

    Raises:
        ConfigError: 엔드포인트 누락 또는 클라이언트 초기화 실패
    """
    from agent_framework.azure import AzureOpenAIChatClient

    settings = get_config().azure_openai

    if not settings.endpoint:
        raise ConfigError(
            "Azure OpenAI 설정이 필요합니다. 환경변수 AZURE_OPENAI_ENDPOINT를 설정하세요."
        )

    try:
        if settings.api_key:
            # API 키 방식
            client = AzureOpenAIChatClient(
                endpoint=settings.endpoint,
                deployment_name=settings.deployment_name,
                api_version=settings.api_version,
                api_key=settings.api_key,
            )
            logger.info("Azure OpenAI ChatClient 초기화 완료 (API 키)")
        else:
            # DefaultAzureCredential 방식
            client = AzureOpenAIChatClient(
                endpoint=settings.endpoint,
                deployment_name=settings.deployment_name,
                api_version=settings.api_version,
                credential=get_azure_credential(),
            )
            logger.info("Azure OpenAI ChatClient 초기화 완료 (DefaultAzureCredential)")

        return client

    except Exception as e:
        raise ConfigError(f"Azure OpenAI ChatClient 초기화 실패: {e}") from e


def get_azure_search_client(index_name: str | None = None) -> Any:
    """Azure AI Search 클라이언트를 반환합니다.

    Args:
        index_name: 검색 인덱스 이름 (기본값: 설정 파일의 값 사용)

    Returns:
        SearchClient 인스턴스

    Raises:
        ConfigError: 엔드포인트 누락 또는 클라이언트 초기화 실패
    """
    from azure.core.credentials import AzureKeyCredential
    from azure.search.documents import SearchClient

    settings = get_config().azure_search
    index = index_name or settings.index_name

    if not settings.endpoint:
        raise ConfigError(
            "Azure AI Search 설정이 필요합니다. 환경변수 AZURE_SEARCH_ENDPOINT를 설정하세요."
        )

    try:
        if settings.api_key:
            # API 키 방식
            client = SearchClient(
                endpoint=settings.endpoint,
                index_name=index,
                credential=AzureKeyCredential(settings.api_key),
            )
            logger.info(f"Azure AI Search 클라이언트 초기화 완료 (API 키, index={index})")
        else:
            # DefaultAzureCredential 방식
            client = SearchClient(
                endpoint=settings.endpoint,
                index_name=index,
                credential=get_azure_credential(),
            )
            logger.info(
                f"Azure AI Search 클라이언트 초기화 완료 (DefaultAzureCredential, index={index})"
            )

        return client

    except Exception as e:
        raise ConfigError(f"Azure AI Search 클라이언트 초기화 실패: {e}") from e
