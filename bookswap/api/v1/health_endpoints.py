"""
Liveness endpoint.
"""

from fastapi import APIRouter, Depends

from bookswap.infrastructure.db.sqlite_database import SqliteDatabase
from bookswap.api.v1.dependencies import get_database

router = APIRouter()


@router.get("/health")
def health_check(
    database: SqliteDatabase = Depends(get_database),
) -> dict:
    """
    Check that the API is up and the database answers.

    Returns "degraded" rather than failing when the database is unreachable
    so that monitors can tell the two situations apart.
    """
    database_ok = database.ping()

    return {
        "status": "ok" if database_ok else "degraded",
        "components": {
            "database": database_ok,
        },
    }
