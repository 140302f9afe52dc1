"""ARQ worker for order housekeeping."""

from arq import cron
from libs.common.arq_config import every_n_minutes, get_redis_settings
from libs.common.config import get_settings
from libs.common.logging import configure_logging, get_logger
from libs.db.config import Database

logger = get_logger(__name__)


async def on_startup(ctx: dict):
    configure_logging()
    database = Database.from_settings(get_settings())
    database.connect()
    ctx["database"] = database
    logger.info("Orders worker started")


async def on_shutdown(ctx: dict):
    database = ctx.get("database")
    if database is not None:
        await database.dispose()
    logger.info("Orders worker stopped")


async def task_expire_abandoned_orders(ctx: dict):
    from services.orders_service.tasks import sweep_abandoned_orders

    logger.info("Running: expire_abandoned_orders")
    return await sweep_abandoned_orders(ctx["database"])


class WorkerSettings:
    redis_settings = get_redis_settings()

    on_startup = on_startup
    on_shutdown = on_shutdown

    functions = [
        task_expire_abandoned_orders,
    ]

    cron_jobs = [
        cron(
            task_expire_abandoned_orders,
            minute=every_n_minutes(get_settings().ORDER_SWEEP_INTERVAL_MINUTES),
            run_at_startup=True,
        ),
    ]
