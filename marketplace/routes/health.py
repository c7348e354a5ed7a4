from fastapi import APIRouter, Depends
from sqlalchemy import text, inspect
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import Base
from marketplace.dependencies import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Marketplace Order Core"}


@router.get("/health/db")
async def database_health(db: AsyncSession = Depends(get_db)):
    """Check connectivity and that every order-core table exists"""
    try:
        await db.execute(text("SELECT 1"))
        tables = await db.run_sync(lambda session: sorted(inspect(session.connection()).get_table_names()))
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }

    missing = sorted(set(Base.metadata.tables) - set(tables))
    return {
        "status": "degraded" if missing else "healthy",
        "database": "connected",
        "tables": tables,
        "missing_tables": missing,
    }
