"""
Shared fixtures: in-memory SQLite database, API client and factories.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.config import settings
from app.core.database import Base
from app.core.security import create_access_token, get_password_hash
from app.main import app
from app.models.document import Document
from app.models.enums import DocumentType, UserRole
from app.models.opd import OPD
from app.models.user import User

PASSWORD = "rahasia123"
BASE_DATE = datetime(2026, 1, 1, 8, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_opd(db):
    def _make(code: str, name: str = None, description: str = None) -> OPD:
        opd = OPD(name=name or f"Dinas {code.title()}", code=code, description=description)
        db.add(opd)
        db.commit()
        db.refresh(opd)
        return opd
    return _make


@pytest.fixture
def make_user(db):
    def _make(username: str, role: UserRole, opd: OPD = None, is_active: bool = True) -> User:
        user = User(
            username=username,
            email=f"{username}@bkpsdm.go.id",
            password_hash=get_password_hash(PASSWORD),
            full_name=username.title(),
            role=role,
            opd_id=opd.id if opd else None,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_document(db):
    counter = {"n": 0}

    def _make(
        opd: OPD,
        uploader: User,
        title: str = None,
        is_public: bool = False,
        description: str = None,
        tags: str = None,
        document_type: DocumentType = DocumentType.PDF,
        upload_date: datetime = None,
    ) -> Document:
        counter["n"] += 1
        n = counter["n"]
        document = Document(
            title=title or f"Dokumen {n}",
            description=description,
            file_path=f"stored-{n}.pdf",
            file_name=f"dokumen-{n}.pdf",
            file_size=1024,
            document_type=document_type,
            mime_type="application/pdf",
            opd_id=opd.id,
            uploaded_by=uploader.id,
            upload_date=upload_date or BASE_DATE + timedelta(days=n),
            tags=tags,
            is_public=is_public,
        )
        db.add(document)
        db.commit()
        db.refresh(document)
        return document
    return _make


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers
