from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from config import get_settings
from database import Base, engine
from api import events
from core.dispatcher import EventDispatcher
from core.session_store import SessionStore

import models  # noqa: F401  註冊所有 table 到 Base.metadata

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立資料表，建立唯一的 SessionStore / Dispatcher
    Base.metadata.create_all(bind=engine)
    app.state.dispatcher = EventDispatcher(
        SessionStore(max_users=settings.session_max_users),
        settings.vote_salt,
    )
    logger.info("Vote bot backend started")
    yield
    # Shutdown: uvicorn 收到 SIGINT/SIGTERM 後會等進行中的請求結束才到這裡
    engine.dispose()
    logger.info("Shutting down")


app = FastAPI(
    title="Nomination Vote Bot API",
    description="Room-based, password-gated nomination voting behind a messaging transport",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(events.router)


@app.get("/")
def root():
    return {"message": "Nomination Vote Bot API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
