import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from socialapi.config import settings
from socialapi.database.connection import engine
from socialapi.database.session import get_db_context
from socialapi.models import achievement, points, social, trade, user  # noqa: F401
from socialapi.models.base import Base
from socialapi.services.point_service import PointService


def init_db():
    """데이터베이스 초기화 (스키마 / 테이블 / 업적 카탈로그)"""
    try:
        if not settings.database_url.startswith("sqlite"):
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        Base.metadata.create_all(bind=engine)
        print(f"✅ Tables created (schema: {settings.POSTGRES_SCHEMA})")

        with get_db_context() as db:
            result = PointService(db, settings).achievement_service.initialize_achievements()
            print(f"✅ {result.message}")

    except Exception as e:
        print(f"❌ Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
