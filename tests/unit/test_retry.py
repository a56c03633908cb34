"""
Тесты retry механизма для Bot API
"""
from unittest.mock import AsyncMock

import pytest
from aiogram.exceptions import TelegramBadRequest, TelegramNetworkError, TelegramRetryAfter
from aiogram.methods import SendMessage

from app.utils.retry import backoff_delay, retry_on_telegram_error


METHOD = SendMessage(chat_id=1, text="test")


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch) -> AsyncMock:
    """Не ждем реальных задержек между попытками"""
    sleep = AsyncMock()
    monkeypatch.setattr("app.utils.retry.asyncio.sleep", sleep)
    return sleep


class FlakyCall:
    """Вызов, который падает заданное число раз"""

    def __init__(self, errors: list[Exception]):
        self.errors = list(errors)
        self.calls = 0

    async def send(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestRetryOnTelegramError:
    async def test_recovers_after_network_errors(self, no_sleep):
        """Сетевые ошибки повторяются с экспоненциальной задержкой"""
        call = FlakyCall([TelegramNetworkError(METHOD, "timeout")] * 2)
        wrapped = retry_on_telegram_error(max_attempts=3, base_delay=1.0)(call.send)

        assert await wrapped() == "ok"
        assert call.calls == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [1.0, 2.0]

    async def test_gives_up_returns_none(self):
        call = FlakyCall([TelegramNetworkError(METHOD, "timeout")] * 5)
        wrapped = retry_on_telegram_error(max_attempts=2)(call.send)

        assert await wrapped() is None
        assert call.calls == 2

    async def test_gives_up_reraise(self):
        call = FlakyCall([TelegramNetworkError(METHOD, "timeout")] * 5)
        wrapped = retry_on_telegram_error(max_attempts=2, reraise=True)(call.send)

        with pytest.raises(TelegramNetworkError):
            await wrapped()

    async def test_flood_control_waits_retry_after(self, no_sleep):
        """429: ждем столько, сколько сказал Telegram, но не больше max_delay"""
        call = FlakyCall([TelegramRetryAfter(METHOD, "flood", retry_after=120)])
        wrapped = retry_on_telegram_error(max_attempts=2, max_delay=30.0)(call.send)

        assert await wrapped() == "ok"
        no_sleep.assert_awaited_once_with(30.0)

    async def test_bad_request_not_retried(self, no_sleep):
        """Ошибки валидации не повторяются"""
        call = FlakyCall([TelegramBadRequest(METHOD, "chat not found")])
        wrapped = retry_on_telegram_error(max_attempts=3, reraise=True)(call.send)

        with pytest.raises(TelegramBadRequest):
            await wrapped()
        assert call.calls == 1
        no_sleep.assert_not_awaited()


def test_backoff_delay_is_capped():
    assert [backoff_delay(n, 1.0, 2.0, 5.0) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]
