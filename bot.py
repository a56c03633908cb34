"""
Главный файл Telegram бота магазина цифровых товаров
"""

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode, UpdateType
from aiogram.types import BotCommand

from app.clients import TelegramNotifier, TelegramStarsProvider
from app.core.config import Config
from app.database import ORMDatabase
from app.handlers import routers
from app.middlewares import DependencyInjectionMiddleware, LoggingMiddleware, global_error_handler
from app.services import ReconciliationScheduler, ServiceFactory
from app.utils.sentry import init_sentry


logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="start", description="Главное меню"),
    BotCommand(command="catalog", description="Каталог"),
    BotCommand(command="orders", description="Мои заказы"),
    BotCommand(command="subscriptions", description="Мои подписки"),
]

# Шумные библиотеки: (уровень в DEBUG, уровень в остальных режимах)
LIBRARY_LOG_LEVELS = {
    "aiogram": (logging.INFO, logging.WARNING),
    "apscheduler": (logging.INFO, logging.WARNING),
    "aiosqlite": (logging.WARNING, logging.WARNING),
    "sqlalchemy.engine": (logging.WARNING, logging.WARNING),
}


def setup_logging(level_name: str, logs_dir: str) -> None:
    """
    Настройка логирования: консоль и, если возможно, файл с ротацией

    Если каталог логов недоступен для записи (bind mount в Docker),
    остается только вывод в консоль.
    """
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    if hasattr(console.stream, "reconfigure"):
        console.stream.reconfigure(encoding="utf-8")
    handlers: list[logging.Handler] = [console]

    log_path = Path(logs_dir) / "bot.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
    except OSError as e:
        sys.stderr.write(f"[logging] файловый лог недоступен ({log_path}): {e}\n")
    else:
        file_handler.setFormatter(formatter)
        handlers.insert(0, file_handler)

    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, handlers=handlers)
    logging.getLogger("app").setLevel(level)

    debug = level == logging.DEBUG
    for name, (debug_level, default_level) in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(debug_level if debug else default_level)
    if debug:
        logger.info("DEBUG режим включен (LOG_LEVEL=DEBUG)")


async def on_startup(bot: Bot, scheduler: ReconciliationScheduler):
    """
    Действия при запуске бота

    Args:
        bot: Экземпляр бота
        scheduler: Планировщик фоновых задач
    """
    await scheduler.start()
    await bot.set_my_commands(BOT_COMMANDS)
    logger.info("Бот успешно запущен!")


async def shutdown(
    bot: Bot | None,
    db: ORMDatabase | None,
    services: ServiceFactory | None,
):
    """Остановка: планировщик, БД, сессия бота (ошибка одного шага не мешает остальным)"""
    steps = []
    if services:
        steps.append(("scheduler", services.scheduler.stop))
    if db:
        steps.append(("БД", db.disconnect))
    if bot:
        steps.append(("bot session", bot.session.close))

    for name, close in steps:
        try:
            await close()
        except Exception as e:
            logger.error(f"Ошибка при остановке ({name}): {e}")

    logger.info("Бот полностью остановлен")


async def main():
    """Основная функция запуска бота"""
    setup_logging(Config.LOG_LEVEL, Config.LOGS_DIR)

    bot = None
    dp = None
    db = None
    services = None

    try:
        init_sentry(Config.SENTRY_DSN, Config.ENVIRONMENT)

        try:
            Config.validate()
        except ValueError as e:
            logger.error(f"Ошибка конфигурации: {e}")
            sys.exit(1)

        # Сначала Bot, затем зависящие от него каналы связи
        bot = Bot(token=Config.BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
        notifier = TelegramNotifier(bot, max_attempts=Config.NOTIFY_MAX_ATTEMPTS)
        provider = TelegramStarsProvider(bot)

        dp = Dispatcher()

        db = ORMDatabase()
        await db.connect()
        if Config.DEV_MODE:
            # В production схема создается миграциями Alembic
            await db.init_db()

        services = ServiceFactory(db, notifier=notifier, provider=provider)

        # Logging первым, чтобы видеть все входящие события
        logging_middleware = LoggingMiddleware()
        di_middleware = DependencyInjectionMiddleware(services)
        for observer in (dp.message, dp.callback_query, dp.pre_checkout_query):
            observer.middleware(logging_middleware)
            observer.middleware(di_middleware)

        for router in routers:
            dp.include_router(router)
        dp.errors.register(global_error_handler)

        await on_startup(bot, services.scheduler)

        await dp.start_polling(
            bot,
            allowed_updates=[
                UpdateType.MESSAGE,
                UpdateType.CALLBACK_QUERY,
                UpdateType.PRE_CHECKOUT_QUERY,
            ],
        )

    except KeyboardInterrupt:
        logger.info("Получен сигнал остановки (Ctrl+C)")
    except Exception as e:
        logger.exception(f"Критическая ошибка: {e}")
    finally:
        await shutdown(bot, db, services)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Бот остановлен пользователем")
