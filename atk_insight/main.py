from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from atk_insight.config import Settings, get_settings
from atk_insight.core.logging import setup_logging
from atk_insight.database import Base, engine, ensure_sqlite_schema
from atk_insight.models import import_all_models
from atk_insight.routers import health_router, inventory_router


setup_logging()
settings: Settings = get_settings()


def init_db() -> None:
    import_all_models()
    Base.metadata.create_all(bind=engine)
    ensure_sqlite_schema()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.include_router(health_router)
app.include_router(inventory_router)


@app.get("/")
def root():
    return RedirectResponse(url="/inventory/recommendations", status_code=302)


__all__ = ["app", "init_db", "root"]
