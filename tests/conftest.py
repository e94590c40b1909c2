import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.crypto import OtpCipher
from app.core.database import Base, create_db_engine, create_session_factory
from app.core.security import create_access_token
from app.main import create_app
from app.models.image import Image  # noqa: F401
from app.models.user import User
from app.services.gemini import GenerationResult


class RecordingQueue:
    """In-memory stand-in for the delayed queue with a manual clock."""

    def __init__(self):
        self.now_ms = 0
        self.jobs = []

    def enqueue(self, task_name, payload, delay_ms):
        self.jobs.append({
            "task": task_name,
            "payload": dict(payload),
            "due_ms": self.now_ms + delay_ms,
        })

    def advance(self, ms, handler):
        self.now_ms += ms
        due = [job for job in self.jobs if job["due_ms"] <= self.now_ms]
        self.jobs = [job for job in self.jobs if job["due_ms"] > self.now_ms]
        for job in due:
            handler(**job["payload"])
        return len(due)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, email, otp):
        if self.fail:
            raise ConnectionError("smtp unavailable")
        self.sent.append((email, otp))

    def last_code(self, email):
        return [otp for sent_to, otp in self.sent if sent_to == email][-1]


class FakeStorage:
    def __init__(self):
        self.uploads = []

    async def upload(self, data, folder="ai_generated_images"):
        self.uploads.append((data, folder))
        return f"https://cdn.example.com/{folder}/{len(self.uploads)}.png"


class FakeGenerator:
    def __init__(self):
        self.calls = []
        self.result = GenerationResult(image_base64="aW1hZ2U=")
        self.error = None

    async def generate(self, prompt, image=None):
        self.calls.append((prompt, image))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-jwt-secret",
        otp_secret="test-otp-secret",
        mail_username="mailer",
        mail_password="mailer-password",
        mail_from="noreply@example.com",
    )


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cipher(settings):
    return OtpCipher(settings.otp_secret)


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def app(settings, session_factory, queue, mailer, storage, generator):
    return create_app(
        settings,
        session_factory=session_factory,
        cleanup_queue=queue,
        mailer=mailer,
        storage=storage,
        generator=generator,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def verified_user(db):
    user = User(email="verified@example.com", is_verified=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(settings, verified_user):
    token = create_access_token(verified_user.id, verified_user.email, settings.jwt_secret)
    return {"Authorization": f"Bearer {token}"}
