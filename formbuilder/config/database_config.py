from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from formbuilder.config.env_config import Settings
from formbuilder.utils.logger_utils import log_info

Base = declarative_base()


def build_engine(app_settings: Settings) -> Engine:
    url = app_settings.database_url

    if url.startswith("sqlite"):
        # In-memory SQLite has to share one connection across sessions
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
    else:
        engine = create_engine(
            url,
            echo=app_settings.LOG_LEVEL == "DEBUG",
            pool_pre_ping=True
        )

    log_info(context="DATABASE", message=f"Database engine created ({engine.dialect.name})")
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_database(engine: Engine) -> None:
    # Import models so every table is registered on Base.metadata
    from formbuilder.models import form_model, payment_model, settings_model, submission_model, user_model  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
