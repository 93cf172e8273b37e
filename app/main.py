from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from app.core import celery, config, database, exception_handlers, redis
from app.domains import plans, recharge, subscriptions, wallet, withdrawals
from app.domains import settings as system_settings
from app.domains.settings.service import seed_defaults
from app.shared.utils.logger import get_logger

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    celery.init_celery()
    await database.init_db()
    async with database.transaction() as db:
        await seed_defaults(db)
    logger.info(f"Wallet service started ({config.settings.ENVIRONMENT.value})")
    yield
    await redis.RedisManager.close()


app = FastAPI(title="Wallet Ledger Service", version=VERSION, lifespan=lifespan)

exception_handlers.setup_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(wallet.router, prefix="/api/wallet", tags=["Wallet"])
app.include_router(plans.router, prefix="/api/plans", tags=["Plans"])
app.include_router(subscriptions.router, prefix="/api/subscriptions", tags=["Subscriptions"])
app.include_router(recharge.router, prefix="/api/recharge", tags=["Recharge"])
app.include_router(withdrawals.router, prefix="/api/withdrawals", tags=["Withdrawals"])
app.include_router(system_settings.router, prefix="/api/settings", tags=["Settings"])


@app.get("/health")
async def health():
    services = {
        "database": await database.check_connection(),
        "redis": await redis.check_connection(),
        "rabbitmq": await celery.check_connection(),
    }
    status = "healthy" if all(services.values()) else "degraded"
    return {
        "status": status,
        "services": services,
        "version": VERSION,
    }
