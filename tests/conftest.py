from datetime import datetime
from pathlib import Path
import sys
import os

import pytest
from sqlalchemy.orm import sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Safety default for the module-level engine created at import time.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from database import Base, build_engine
import models  # noqa: F401
from schemas import ButtonEvent, TextEvent
from core.dispatcher import EventDispatcher
from core.session_store import SessionStore
from core.transport import Outbox

FIXED_NOW = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture()
def engine(tmp_path: Path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.sqlite3'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def sessions():
    return SessionStore()


@pytest.fixture()
def dispatcher(sessions):
    return EventDispatcher(sessions, "test-salt", clock=lambda: FIXED_NOW)


@pytest.fixture()
def outbox():
    return Outbox()


@pytest.fixture()
def send_command(dispatcher, db_session):
    """把一個指令丟給 dispatcher，回傳收集到的 outbox"""
    def _send(user_id, name, args="", chat_id=None):
        box = Outbox()
        event = TextEvent(
            sender_id=user_id,
            chat_id=chat_id or user_id,
            text=f"/{name} {args}".strip(),
            is_command=True,
            command_name=name,
            command_args=args,
        )
        dispatcher.handle_text(db_session, event, box)
        return box
    return _send


@pytest.fixture()
def send_text(dispatcher, db_session):
    def _send(user_id, text="", photo_refs=None, video_ref=None, chat_id=None):
        box = Outbox()
        event = TextEvent(
            sender_id=user_id,
            chat_id=chat_id or user_id,
            text=text,
            photo_refs=photo_refs or [],
            video_ref=video_ref,
        )
        dispatcher.handle_text(db_session, event, box)
        return box
    return _send


@pytest.fixture()
def press(dispatcher, db_session):
    def _press(user_id, payload, chat_id=None):
        box = Outbox()
        event = ButtonEvent(sender_id=user_id, chat_id=chat_id or user_id, message_ref="m1", payload=payload)
        dispatcher.handle_button(db_session, event, box)
        return box
    return _press
