"""
Pytest configuration and fixtures.

Tests run against an in-memory SQLite database. Upstream HTTP services
(embeddings, LLM, SMS) are replaced with httpx MockTransport fakes, and the
pgvector distance operator is replaced with an in-process cosine search.
"""

import os

# Must be set before mnemo settings are imported
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTH_SECRET"] = "test-secret-key"
os.environ["EMBEDDING_DIMENSION"] = "3"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from mnemo.api import dependencies  # noqa: E402
from mnemo.core.database import Base, get_db  # noqa: E402
from mnemo.main import app  # noqa: E402
from mnemo.memory.deduplicator import MemoryDeduplicator  # noqa: E402
from mnemo.memory.embedder import EmbeddingService  # noqa: E402
from mnemo.services.account_service import AccountService  # noqa: E402
from mnemo.services.chat_service import ChatService  # noqa: E402
from mnemo.services.llm_service import LLMService  # noqa: E402
from mnemo.services.memory_service import MemoryService  # noqa: E402
from mnemo.utils.sms import SMSService  # noqa: E402
from tests.factories import (  # noqa: E402
    CosineRetriever, FakeEmbeddings, FakeLLM, FakeSMS, build_settings, login, make_user
)


@pytest.fixture
def test_settings():
    return build_settings()


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_sms():
    return FakeSMS()


# ================================
# Database
# ================================

@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Create test database session."""
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


# ================================
# Services
# ================================

@pytest.fixture
def sms_service(fake_sms):
    config = build_settings(
        twilio_account_sid="AC123",
        twilio_auth_token="token",
        twilio_phone_number="+15550000000",
    )
    return SMSService(config, transport=fake_sms.transport)


@pytest.fixture
def services(test_settings, fake_embeddings, fake_llm, sms_service):
    """Fully wired services talking to the fake upstreams."""
    embedding_service = EmbeddingService(test_settings, transport=fake_embeddings.transport)
    retriever = CosineRetriever(test_settings)
    llm_service = LLMService(test_settings, transport=fake_llm.transport)
    memory_service = MemoryService(embedding_service, retriever)
    chat_service = ChatService(
        embedding_service=embedding_service,
        retriever=retriever,
        deduplicator=MemoryDeduplicator(retriever, test_settings),
        llm_service=llm_service,
        memory_service=memory_service,
    )
    return {
        "embedding": embedding_service,
        "retriever": retriever,
        "llm": llm_service,
        "memory": memory_service,
        "chat": chat_service,
        "account": AccountService(sms_service, test_settings),
    }


@pytest.fixture
def client(db_session, services):
    """TestClient with database and services overridden."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_embedding_service] = lambda: services["embedding"]
    app.dependency_overrides[dependencies.get_retriever] = lambda: services["retriever"]
    app.dependency_overrides[dependencies.get_llm_service] = lambda: services["llm"]
    app.dependency_overrides[dependencies.get_memory_service] = lambda: services["memory"]
    app.dependency_overrides[dependencies.get_chat_service] = lambda: services["chat"]
    app.dependency_overrides[dependencies.get_account_service] = lambda: services["account"]

    yield TestClient(app)

    app.dependency_overrides.clear()


# ================================
# Users
# ================================

@pytest.fixture
def test_user(db_session):
    """Create test user."""
    return make_user(db_session)


@pytest.fixture
def other_user(db_session):
    return make_user(db_session, email="grace@example.com", name="Grace")


@pytest.fixture
def auth_client(client, test_user):
    """Client signed in as test_user."""
    login(client, test_user)
    return client
