"""Initialize local development data"""
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from alembic import command
from alembic.config import Config
from sqlalchemy import select, text

from app.core.database import engine, transaction
from app.shared.utils.logger import get_logger

logger = get_logger(__name__)

DEMO_PLANS = [
    {"name": "Starter", "price": Decimal("500.00"), "validity": 30, "daily_return": Decimal("3.50")},
    {"name": "Growth", "price": Decimal("2000.00"), "validity": 60, "daily_return": Decimal("16.00")},
    {"name": "Premium", "price": Decimal("10000.00"), "validity": 90, "daily_return": Decimal("95.00")},
]


async def check_and_run_migrations():
    """Run alembic upgrade unless the schema is already there"""
    async with engine.begin() as conn:
        result = await conn.execute(
            text("""
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_name = 'alembic_version'
                );
            """)
        )
        alembic_exists = result.scalar()

    if not alembic_exists:
        logger.info("Running database migrations...")
        # alembic's env.py drives a sync engine, keep it off the event loop
        await asyncio.to_thread(command.upgrade, Config("alembic.ini"), "head")
        logger.info("Migrations completed")
    else:
        logger.info("Database schema is up to date")


async def init_local_data():
    """Seed settings, demo plans and two demo users"""
    from app.domains.plans import repository as plan_repository
    from app.domains.plans.models import Plan
    from app.domains.settings.service import seed_defaults
    from app.domains.users import repository as user_repository

    async with transaction() as db:
        created = await seed_defaults(db)
        logger.info(f"Seeded {created} settings")

        if (await db.execute(select(Plan).limit(1))).scalar_one_or_none():
            logger.info("Data already exists, skipping initialization")
            return

        for plan in DEMO_PLANS:
            await plan_repository.create_plan(db, **plan)

        referrer = await user_repository.create_user(db, name="Demo Referrer", user_id="demo_user_1")
        await user_repository.create_user(
            db, name="Demo Investor", user_id="demo_user_2", referred_by=referrer.id
        )
        await user_repository.create_user(db, name="Admin", user_id="demo_admin", role="admin")

    logger.info("Local data initialized successfully")


async def main():
    await check_and_run_migrations()
    await init_local_data()


if __name__ == "__main__":
    asyncio.run(main())
