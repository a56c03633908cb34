"""
Интеграция Sentry для error tracking
"""

import logging

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration


logger = logging.getLogger(__name__)


def init_sentry(dsn: str | None, environment: str = "production") -> bool:
    """
    Инициализация Sentry (опционально)

    Ошибки фоновых задач логируются через logger.exception, поэтому
    LoggingIntegration отправляет их в Sentry как события.

    Args:
        dsn: Sentry DSN, если не задан - error tracking отключен
        environment: Окружение (production, staging, development)

    Returns:
        True если Sentry инициализирован
    """
    if not dsn:
        logger.info("Sentry DSN не настроен, error tracking отключен")
        return False

    logging_integration = LoggingIntegration(
        level=logging.INFO,  # breadcrumbs
        event_level=logging.ERROR,  # events
    )

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        integrations=[logging_integration, AsyncioIntegration()],
        send_default_pii=False,
        attach_stacktrace=True,
        max_breadcrumbs=50,
    )

    logger.info(f"Sentry инициализирован (environment: {environment})")
    return True
