from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from bcare.core.config import settings

connect_args = {}
_backend = make_url(settings.DATABASE_URL).get_backend_name()
if _backend.startswith("postgresql"):
    connect_args["options"] = "-c timezone=utc"
elif _backend == "sqlite":
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
