import pytest
from unittest.mock import MagicMock

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pushsvc.database import Base, get_db
from pushsvc import models  # noqa: F401  (registers the tables)
from pushsvc.models import Subscriber
from pushsvc.main import app
from pushsvc.services.credentials import ServiceCredential

# --- Database Setup for Testing ---
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_token(prefix: str = "dev", length: int = 152) -> str:
    """Realistic-looking FCM token of the given length"""
    base = f"{prefix}:APA91b"
    return (base + "x" * length)[:length]


def mock_response(status_code=200, json_data=None, text=None):
    response = MagicMock()
    response.status_code = status_code
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    response.text = text if text is not None else str(json_data)
    return response


# --- Fixtures ---

@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def subscribers(db_session):
    """Users 1, 2 and 3"""
    db_session.add_all([Subscriber(sId=1), Subscriber(sId=2), Subscriber(sId=3)])
    db_session.commit()
    return [1, 2, 3]


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    del app.dependency_overrides[get_db]


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key):
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key):
    return rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


@pytest.fixture
def credential(private_key_pem):
    return ServiceCredential(
        private_key=private_key_pem,
        client_email="push-sender@test-project.iam.gserviceaccount.com",
        project_id="test-project",
    )
