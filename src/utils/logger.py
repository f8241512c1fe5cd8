"""로깅 설정 및 유틸리티.

프로젝트 로거(src.*)에 공통 포맷과 레벨을 적용합니다.
"""

import logging
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# set_level()로 바뀌며, 이후 생성되는 로거에도 적용됩니다
_project_level = logging.INFO


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """로거 인스턴스를 생성하여 반환합니다.

    같은 이름으로 다시 호출하면 핸들러를 추가하지 않고 기존 로거를 반환합니다.

    Args:
        name: 로거 이름 (일반적으로 __name__ 사용)
        level: 로그 레벨 (기본값: 현재 프로젝트 레벨, 최초 INFO)

    Returns:
        stdout 핸들러가 하나 붙은 Logger 인스턴스

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Orchestrator 초기화 완료")
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = _project_level if level is None else level
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    # 루트 로거로 전파하지 않음 (중복 출력 방지)
    logger.propagate = False

    return logger


def log_with_context(
    logger: logging.Logger, level: int, message: str, **context: Any
) -> None:
    """메시지 뒤에 " | key=value" 형식으로 컨텍스트를 붙여 기록합니다.

    Example:
        >>> log_with_context(
        ...     logger,
        ...     logging.INFO,
        ...     "Agent 단계 완료",
        ...     agent="regulatory_parser",
        ...     status="completed",
        ...     duration_ms=150
        ... )
    """
    if context:
        message = f"{message} | " + " | ".join(f"{k}={v}" for k, v in context.items())
    logger.log(level, message)


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def set_level(level: str | int) -> None:
    """프로젝트 로거(src.*) 전체의 레벨을 변경합니다.

    설정(AppConfig.log_level)에서 읽은 값을 적용할 때 사용합니다.
    알 수 없는 레벨 이름은 INFO로 처리합니다.

    Args:
        level: "DEBUG", "INFO" 등 레벨 이름 또는 정수 레벨
    """
    global _project_level
    _project_level = _resolve_level(level)

    for name, logger in logging.root.manager.loggerDict.items():
        if (name == "src" or name.startswith("src.")) and isinstance(logger, logging.Logger):
            logger.setLevel(_project_level)
            for handler in logger.handlers:
                handler.setLevel(_project_level)
