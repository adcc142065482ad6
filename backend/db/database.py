import os
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from dotenv import load_dotenv

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017/shift_compliance")

_client: AsyncIOMotorClient | None = None


def _database_name() -> str:
    return MONGODB_URL.rsplit("/", 1)[-1].split("?")[0]


async def init_db():
    global _client

    from .models import (
        StaffDoc,
        ScheduleMonthDoc,
        ShiftDoc,
        CoverageDayRuleDoc,
        CoverageDateOverrideDoc,
        StaffScheduleRuleDoc,
        OrganizationScheduleRuleDoc,
        TimeOffDoc,
        VacationBalanceDoc,
        UserDoc,
    )

    _client = AsyncIOMotorClient(MONGODB_URL)
    database = _client[_database_name()]

    await init_beanie(
        database=database,
        document_models=[
            StaffDoc,
            ScheduleMonthDoc,
            ShiftDoc,
            CoverageDayRuleDoc,
            CoverageDateOverrideDoc,
            StaffScheduleRuleDoc,
            OrganizationScheduleRuleDoc,
            TimeOffDoc,
            VacationBalanceDoc,
            UserDoc,
        ],
    )

    return database


def get_database():
    if _client is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _client[_database_name()]


async def close_db():
    global _client
    if _client is not None:
        _client.close()
        _client = None
