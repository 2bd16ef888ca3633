import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import pytest
from sqlalchemy import select

from tezeus.conversation.infrastructure.models import Contact, Conversation, ConversationAssignment, Message
from tezeus.dependencies import get_crypto_service
from tezeus.main import app as fastapi_app
from tezeus.shared.database.base import Base, load_all_models
from tezeus.shared.database.database import close_database_engine, create_database_engine, get_engine, get_session_factory
from tezeus.shared.request_context import RequestContext
from tezeus.shared.security.crypto import CryptoService, generate_key
from tezeus.workspace.infrastructure.models import SystemUser, Workspace, WorkspaceMember


@dataclass
class Tenancy:
    workspace: Workspace
    other_workspace: Workspace
    agent: SystemUser
    colleague: SystemUser
    master: SystemUser
    outsider: SystemUser
    contact: Contact
    conversation: Conversation


def ctx_for(user: SystemUser, workspace: Optional[Workspace] = None) -> RequestContext:
    return RequestContext(
        user_id=str(user.id),
        user_email=user.email,
        workspace_id=str(workspace.id) if workspace is not None else None,
    )


def headers_for(user: SystemUser, workspace: Optional[Workspace] = None) -> Dict[str, str]:
    return ctx_for(user, workspace).to_headers()


@pytest.fixture
async def database(tmp_path):
    load_all_models()
    await create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'tezeus.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield get_session_factory()
    await close_database_engine()


@pytest.fixture
async def db(database):
    async with database() as session:
        yield session


@pytest.fixture
async def add(db):
    """Persist ORM rows and return the first one."""

    async def _add(*rows: Any) -> Any:
        db.add_all(rows)
        await db.commit()
        return rows[0]

    return _add


@pytest.fixture
async def tenancy(add) -> Tenancy:
    workspace = await add(Workspace(name="Acme Support"))
    other = await add(Workspace(name="Other Co"))
    agent = await add(SystemUser(name="Ana Agent", email="ana@acme.test"))
    colleague = await add(SystemUser(name="Caio Colleague", email="caio@acme.test"))
    master = await add(SystemUser(name="Mia Master", email="mia@tezeus.test", profile="master"))
    outsider = await add(SystemUser(name="Otto Outsider", email="otto@other.test"))
    await add(
        WorkspaceMember(workspace_id=workspace.id, user_id=agent.id, role="user"),
        WorkspaceMember(workspace_id=workspace.id, user_id=colleague.id, role="admin"),
        WorkspaceMember(workspace_id=other.id, user_id=outsider.id, role="user"),
    )
    contact = await add(Contact(workspace_id=workspace.id, name="Cliente", phone="5511999990000"))
    conversation = await add(
        Conversation(workspace_id=workspace.id, contact_id=contact.id, status="pending", evolution_instance="acme-main")
    )
    return Tenancy(workspace, other, agent, colleague, master, outsider, contact, conversation)


@pytest.fixture
async def fetch(database):
    """Read rows back through a fresh session (what other requests would see)."""

    async def _fetch(model, *criteria):
        async with database() as session:
            return list((await session.execute(select(model).where(*criteria))).scalars())

    return _fetch


@pytest.fixture
def history(fetch):
    async def _history(conversation_id, action=None):
        criteria = [ConversationAssignment.conversation_id == conversation_id]
        if action is not None:
            criteria.append(ConversationAssignment.action == action)
        return await fetch(ConversationAssignment, *criteria)

    return _history


@pytest.fixture
def messages(fetch):
    async def _messages(conversation_id):
        return await fetch(Message, Message.conversation_id == conversation_id)

    return _messages


@pytest.fixture
def crypto():
    return CryptoService(generate_key())


@pytest.fixture
def app(database, crypto):
    fastapi_app.dependency_overrides[get_crypto_service] = lambda: crypto
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
