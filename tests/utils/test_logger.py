"""로깅 유틸리티 테스트"""

import logging

import pytest

from src.utils.logger import get_logger, log_with_context, set_level


@pytest.fixture
def logger():
    logger = get_logger("src.tests.logger_check")
    yield logger
    set_level(logging.INFO)


def _stdout_handlers(logger):
    """get_logger가 붙인 stdout 핸들러만 반환합니다 (테스트 도구의 캡처 핸들러 제외)."""
    return [h for h in logger.handlers if type(h) is logging.StreamHandler]


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


class TestGetLogger:
    """get_logger 테스트"""

    def test_single_handler(self, logger):
        again = get_logger("src.tests.logger_check")

        assert again is logger
        assert len(_stdout_handlers(logger)) == 1
        assert logger.propagate is False

    def test_default_level(self, logger):
        assert logger.level == logging.INFO


class TestLogWithContext:
    """log_with_context 테스트"""

    def test_context_appended(self, logger):
        handler = RecordingHandler()
        logger.addHandler(handler)
        try:
            log_with_context(logger, logging.INFO, "Agent 단계 완료", agent="regulatory_parser", status="completed")
            log_with_context(logger, logging.INFO, "컨텍스트 없음")
        finally:
            logger.removeHandler(handler)

        assert handler.messages == [
            "Agent 단계 완료 | agent=regulatory_parser | status=completed",
            "컨텍스트 없음",
        ]


class TestSetLevel:
    """set_level 테스트"""

    def test_level_name(self, logger):
        set_level("debug")

        assert logger.level == logging.DEBUG
        assert _stdout_handlers(logger)[0].level == logging.DEBUG

    def test_integer_level(self, logger):
        set_level(logging.WARNING)

        assert logger.level == logging.WARNING

    def test_unknown_name_falls_back_to_info(self, logger):
        set_level(logging.ERROR)

        set_level("verbose")

        assert logger.level == logging.INFO

    def test_applies_to_loggers_created_later(self, logger):
        """레벨 변경 후 생성되는 로거도 같은 레벨을 사용해야 합니다."""
        set_level("WARNING")

        late = get_logger("src.tests.logger_late")

        assert late.level == logging.WARNING
        assert _stdout_handlers(late)[0].level == logging.WARNING

    def test_other_loggers_untouched(self, logger):
        other = logging.getLogger("thirdparty.client")
        other.setLevel(logging.CRITICAL)

        set_level("DEBUG")

        assert other.level == logging.CRITICAL
