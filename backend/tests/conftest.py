"""
Configuration partagée pour tous les tests.

- `client` : API avec la BDD mockée (MagicMock), l'identité et le stockage remplacés
- `db` : vraie session SQLAlchemy sur SQLite en mémoire, pour les tests de services
- `store` : stockage de contenu en mémoire
"""

import io
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from photoqc.database import Base, get_db
from photoqc.dependencies import get_current_identity, get_store
from photoqc.errors import StorageError
from photoqc.main import app
from photoqc.models.access_grant import SubsectionAllowedEmail
from photoqc.models.checkpoint import Checkpoint, Entity
from photoqc.models.route import Route, Subsection
from photoqc.models.user import User
from photoqc.schemas.comment import CommentResponse
from photoqc.schemas.identity import Identity, Role
from photoqc.schemas.submission import CaptureFingerprint, PhotoContent, SlotIdentity, SubmissionResponse
from photoqc.services.content_store import ContentStore


class InMemoryContentStore(ContentStore):
    """Stockage de test : dictionnaire clé → octets, pannes simulables."""

    def __init__(self):
        self.objects = {}
        self.fail_put = False
        self.fail_delete = False

    def put(self, key, data, content_type):
        if self.fail_put:
            raise StorageError(f"put {key}: panne simulée")
        self.objects[key] = data
        return f"memory://{key}"

    def get(self, key):
        if key not in self.objects:
            raise StorageError(f"get {key}: absent")
        return self.objects[key]

    def delete(self, key):
        if self.fail_delete:
            raise StorageError(f"delete {key}: panne simulée")
        self.objects.pop(key, None)


# ----------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------

def make_identity(email="reviewer@example.com", role=Role.REVIEWER, name=None, user_id=None) -> Identity:
    return Identity(email=email, name=name or email.split("@")[0], role=role, user_id=user_id)


def make_image_bytes(size=(40, 30), image_format="JPEG", color=(200, 120, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


def make_slot(**kwargs) -> SlotIdentity:
    return SlotIdentity(
        route_id=kwargs.get("route_id", "R1"),
        subsection_id=kwargs.get("subsection_id", "S1"),
        checkpoint_id=kwargs.get("checkpoint_id", 1),
        execution_stage=kwargs.get("execution_stage", "Before"),
        photo_index=kwargs.get("photo_index", 1),
    )


def make_content(size=1000, last_modified=1_700_000_000_000, **kwargs) -> PhotoContent:
    return PhotoContent(
        data=kwargs.get("data", make_image_bytes()),
        original_filename=kwargs.get("original_filename", "IMG_0001.jpg"),
        fingerprint=CaptureFingerprint(file_original_size=size, file_last_modified=last_modified),
        location=kwargs.get("location"),
    )


def seed_reference_data(db) -> None:
    """Routes R1/R2, sous-sections S1/S2, une entité et deux checkpoints (ids 1 et 2)."""
    db.add_all([
        Route(route_id="R1", route_name="Route 1"),
        Route(route_id="R2", route_name="Route 2"),
    ])
    db.add_all([
        Subsection(route_id="R1", subsection_id="S1", subsection_name="Tronçon 1"),
        Subsection(route_id="R1", subsection_id="S2", subsection_name="Tronçon 2"),
        Subsection(route_id="R2", subsection_id="S1", subsection_name="Tronçon A"),
    ])
    entity = Entity(name="Manhole", display_order=1)
    db.add(entity)
    db.flush()
    db.add_all([
        Checkpoint(id=1, entity_id=entity.id, checkpoint_name="Cover level", display_order=1),
        Checkpoint(id=2, entity_id=entity.id, checkpoint_name="Bedding", code="BED", display_order=2),
    ])
    db.commit()


def add_user(db, email, role=None, name=None) -> User:
    user = User(email=email, name=name or email.split("@")[0], role=role)
    db.add(user)
    db.commit()
    return user


def grant(db, route_id, subsection_id, *emails) -> None:
    for email in emails:
        db.add(SubsectionAllowedEmail(route_id=route_id, subsection_id=subsection_id, email=email))
    db.commit()


def make_submission_response(**kwargs) -> SubmissionResponse:
    return SubmissionResponse(
        id=kwargs.get("id", 1),
        route_id=kwargs.get("route_id", "R1"),
        subsection_id=kwargs.get("subsection_id", "S1"),
        checkpoint_id=kwargs.get("checkpoint_id", 1),
        entity=kwargs.get("entity", "Manhole"),
        checkpoint_name=kwargs.get("checkpoint_name", "Cover level"),
        execution_stage=kwargs.get("execution_stage", "Before"),
        photo_index=kwargs.get("photo_index", 1),
        status=kwargs.get("status", "pending"),
        filename=kwargs.get("filename", "R1-S1-MAN-COV-B-1-20250116-021510.jpg"),
        content_url=kwargs.get("content_url", "https://bucket/df-photos/R1-S1-MAN-COV-B-1-20250116-021510.jpg"),
        file_size=kwargs.get("file_size", 2048),
        width=kwargs.get("width", 40),
        height=kwargs.get("height", 30),
        latitude=None,
        longitude=None,
        location_accuracy=None,
        user_email=kwargs.get("user_email", "engineer@example.com"),
        reviewed_at=kwargs.get("reviewed_at", None),
        resubmission_of_id=kwargs.get("resubmission_of_id", None),
        created_at=kwargs.get("created_at", datetime(2025, 1, 16, 2, 15, 10)),
    )


def make_comment(**kwargs) -> CommentResponse:
    return CommentResponse(
        id=kwargs.get("id", 1),
        author_email=kwargs.get("author_email", "reviewer@example.com"),
        author_name=kwargs.get("author_name", "Reviewer"),
        created_at=kwargs.get("created_at", datetime(2025, 1, 16, 9, 0)),
        comment_text=kwargs.get("comment_text", "Photo floue"),
    )


# ----------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------

@pytest.fixture
def identity():
    return make_identity(user_id=1)


@pytest.fixture
def client(identity):
    """Client HTTP de test avec la BDD mockée et l'identité fixée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_current_identity] = lambda: identity
    app.dependency_overrides[get_store] = lambda: InMemoryContentStore()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def raw_client():
    """Client HTTP de test sans remplacement de l'identité (en-têtes réels)."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = factory()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def seeded_db(db):
    seed_reference_data(db)
    return db


@pytest.fixture
def store():
    return InMemoryContentStore()
