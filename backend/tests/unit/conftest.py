# backend/tests/unit/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from docbridge.main import app
from docbridge.db import Base, get_db
from docbridge import models
from docbridge.enums import DocumentStatus

# One in-memory DB shared across threads (TestClient) via StaticPool
engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enforce FKs in SQLite (off by default otherwise)
@event.listens_for(engine, "connect")
def _set_sqlite_pragma(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session():
    # Services commit, so every test gets freshly created tables
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(autouse=True)
def _override_get_db(db_session):
    def _get_db():
        yield db_session
    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.clear()

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def companies(db_session):
    """Sender and recipient companies"""
    sender = models.Company(name="Acme Supplies")
    recipient = models.Company(name="Globex Retail")
    db_session.add_all([sender, recipient])
    db_session.commit()
    return sender, recipient

@pytest.fixture
def make_document(db_session, companies):
    """Factory for documents between the two test companies"""
    sender, recipient = companies

    def _make(file_path="/tmp/missing.txt", original_filename=None, status=DocumentStatus.SENT, document_type=None):
        document = models.Document(
            sender_company_id=sender.id,
            recipient_company_id=recipient.id,
            original_filename=original_filename or file_path.rsplit("/", 1)[-1],
            file_path=file_path,
            status=status,
            document_type=document_type,
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make
