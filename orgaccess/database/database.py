from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from orgaccess.config import get_settings

settings = get_settings()

# SQLite일 때만 check_same_thread 옵션이 필요합니다. (요청마다 다른 스레드에서 세션 사용)
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, echo=settings.database_echo, connect_args=connect_args)

# autocommit=False, autoflush=False: 리포지토리가 명시적으로 commit 해야 DB에 반영됩니다.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 모든 모델 클래스가 상속받을 Base 클래스
Base = declarative_base()
