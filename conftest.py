import json

import pytest
from fastapi.testclient import TestClient

from api.quiz import get_quiz_generator
from api.trainings import get_transcript_fetcher
from config import Settings
from main import create_app
from models.models import User, Brand, Training, Quiz, QuizQuestion, QuizAnswer
from utils.auth import create_access_token, token_claims_for
from utils.progress import mark_watched
from utils.quiz_generator import QuizGenerator
from utils.transcript import TranscriptError

RETINAL_TRANSCRIPT = (
    "Retinaldehyde is the active ingredient of the Crystal Retinal serum. "
    "It works one step closer to retinoic acid than retinol, so results show faster "
    "with less irritation. Apply at night on clean skin and always use sunscreen the next day."
)

GENERATED_QUESTIONS = [
    {
        "question": "What is the active ingredient of Crystal Retinal?",
        "type": "single",
        "options": ["Retinaldehyde", "Niacinamide", "Vitamin C", "Salicylic acid"],
        "correctAnswer": [0],
    },
    {
        "question": "Crystal Retinal should be applied at night.",
        "type": "boolean",
        "options": ["True", "False"],
        "correctAnswer": [0],
    },
    {
        "question": "Which of these are part of the routine?",
        "type": "multiple",
        "options": ["Clean skin", "Sunscreen the next day", "Exfoliate twice daily", "Skip moisturiser"],
        "correctAnswer": [0, 1],
    },
    {
        "question": "Compared to retinol, retinaldehyde is...",
        "type": "single",
        "options": ["Slower", "One step closer to retinoic acid", "A sunscreen", "An exfoliant"],
        "correctAnswer": [1],
    },
    {
        "question": "Retinaldehyde causes more irritation than retinol.",
        "type": "boolean",
        "options": ["True", "False"],
        "correctAnswer": [1],
    },
]


def fenced(payload) -> str:
    return "```json\n" + json.dumps(payload) + "\n```"


class FakeQuizGenerator(QuizGenerator):
    """Quiz generator that answers with canned model output."""

    def __init__(self, settings, response_text=None, configured=True):
        super().__init__(settings)
        self.response_text = response_text if response_text is not None else fenced({"questions": GENERATED_QUESTIONS})
        self.configured = configured
        self.prompts = []

    @property
    def is_configured(self):
        return self.configured

    def _generate_ai_response(self, system_prompt, user_prompt):
        self.prompts.append(user_prompt)
        return self.response_text


class FakeTranscriptFetcher:
    def __init__(self, text=RETINAL_TRANSCRIPT, error=None):
        self.text = text
        self.error = error
        self.urls = []

    def fetch_text(self, url):
        self.urls.append(url)
        if self.error:
            raise TranscriptError(self.error)
        return self.text


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret",
        pass_threshold=90,
        session_ttl_minutes=10,
        enforce_watched=True,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app):
    session = app.state.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def generator(app, settings):
    fake = FakeQuizGenerator(settings)
    app.dependency_overrides[get_quiz_generator] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_quiz_generator, None)


@pytest.fixture
def transcript_fetcher(app):
    fake = FakeTranscriptFetcher()
    app.dependency_overrides[get_transcript_fetcher] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_transcript_fetcher, None)


def _make_user(db, email, name, is_admin=False):
    user = User(email=email, name=name, password="not-a-real-hash", is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user, settings):
    token = create_access_token(token_claims_for(user), settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(db):
    return _make_user(db, "ana@example.com", "Ana")


@pytest.fixture
def other_user(db):
    return _make_user(db, "rui@example.com", "Rui")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@example.com", "Admin", is_admin=True)


@pytest.fixture
def user_headers(user, settings):
    return auth_headers(user, settings)


@pytest.fixture
def other_headers(other_user, settings):
    return auth_headers(other_user, settings)


@pytest.fixture
def admin_headers(admin, settings):
    return auth_headers(admin, settings)


@pytest.fixture
def brand(db):
    brand = Brand(name="Skin Care", description="Serums and creams", order=1)
    db.add(brand)
    db.commit()
    db.refresh(brand)
    return brand


@pytest.fixture
def training(db, brand):
    training = Training(
        brand_id=brand.id,
        title="Crystal Retinal",
        description="Night serum training",
        media_files=[{
            "id": "m1",
            "type": "youtube",
            "url": "https://www.youtube.com/watch?v=abc123XYZ",
            "fileName": "crystal-retinal",
        }],
        is_active=True,
        transcript=RETINAL_TRANSCRIPT,
    )
    db.add(training)
    db.commit()
    db.refresh(training)
    return training


@pytest.fixture
def watched(db, user, training):
    return mark_watched(db, user.id, training.id)


@pytest.fixture
def legacy_quiz(db, training):
    """Five single-answer questions; returns (quiz, {question_id: (correct_id, wrong_id)})."""
    quiz = Quiz(training_id=training.id)
    db.add(quiz)
    db.commit()
    db.refresh(quiz)

    key = {}
    for number in range(5):
        question = QuizQuestion(quiz_id=quiz.id, question=f"Question {number + 1}?", type="multiple_choice")
        db.add(question)
        db.commit()
        db.refresh(question)

        right = QuizAnswer(question_id=question.id, answer_text="Right", is_correct=True)
        wrong = QuizAnswer(question_id=question.id, answer_text="Wrong", is_correct=False)
        db.add_all([right, wrong])
        db.commit()
        key[question.id] = (right.id, wrong.id)
    return quiz, key
