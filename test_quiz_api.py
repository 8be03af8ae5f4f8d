from datetime import datetime, timedelta

from conftest import GENERATED_QUESTIONS, FakeQuizGenerator
from api.quiz import get_quiz_generator
from models.models import QuizSession, Progress, Quiz
from utils.progress import mark_watched


def _generate(client, headers, training_id):
    response = client.post("/api/quiz/generate", json={"trainingId": training_id}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


# AI-generated quizzes

def test_generate_returns_questions_without_answers(client, generator, training, user_headers):
    data = _generate(client, user_headers, training.id)

    assert data["sessionId"]
    assert len(data["questions"]) == 5
    for index, question in enumerate(data["questions"]):
        assert set(question) == {"id", "question", "type", "options"}
        assert question["id"] == index
        assert len(question["options"]) >= 2
    assert "Retinaldehyde is the active ingredient" in generator.prompts[0]


def test_full_ai_quiz_flow_scores_100(client, db, generator, training, user, user_headers, watched):
    data = _generate(client, user_headers, training.id)
    session_id = data["sessionId"]

    answers = {}
    for question in data["questions"]:
        response = client.post("/api/quiz/check", json={
            "trainingId": training.id,
            "sessionId": session_id,
            "questionIndex": question["id"],
            "selectedIndices": [0],
        }, headers=user_headers)
        assert response.status_code == 200, response.text
        body = response.json()
        assert set(body) == {"isCorrect", "correctIndices"}
        answers[str(question["id"])] = body["correctIndices"]

    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "answers": answers,
    }, headers=user_headers)
    assert response.status_code == 200, response.text
    assert response.json() == {"score": 100, "passed": True}

    db.expire_all()
    progress = db.query(Progress).filter(Progress.id == f"{user.id}_{training.id}").one()
    assert progress.score == 100
    assert progress.passed is True
    assert progress.watched is True
    assert progress.completed_at is not None

    # The session is single-use
    assert db.query(QuizSession).filter(QuizSession.id == session_id).first() is None
    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "answers": answers,
    }, headers=user_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "not-found"


def test_check_answer_reports_correctness(client, generator, training, user_headers):
    session_id = _generate(client, user_headers, training.id)["sessionId"]

    response = client.post("/api/quiz/check", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "questionIndex": 2,
        "selectedIndices": [1, 0],
    }, headers=user_headers)
    assert response.json() == {"isCorrect": True, "correctIndices": [0, 1]}

    response = client.post("/api/quiz/check", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "questionIndex": 2,
        "selectedIndices": [0],
    }, headers=user_headers)
    assert response.json() == {"isCorrect": False, "correctIndices": [0, 1]}


def test_check_answer_unknown_question_index(client, generator, training, user_headers):
    session_id = _generate(client, user_headers, training.id)["sessionId"]
    response = client.post("/api/quiz/check", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "questionIndex": 9,
        "selectedIndices": [0],
    }, headers=user_headers)
    assert response.status_code == 404


def test_four_of_five_fails_at_ninety(client, generator, training, user_headers, watched):
    session_id = _generate(client, user_headers, training.id)["sessionId"]
    answers = {str(i): q["correctAnswer"] for i, q in enumerate(GENERATED_QUESTIONS)}
    answers["4"] = [0]

    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "answers": answers,
    }, headers=user_headers)
    assert response.json() == {"score": 80, "passed": False}


def test_unanswered_questions_count_as_wrong(client, db, generator, training, user, user_headers, watched):
    session_id = _generate(client, user_headers, training.id)["sessionId"]
    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "answers": {"0": [0]},
    }, headers=user_headers)
    assert response.json() == {"score": 20, "passed": False}

    db.expire_all()
    progress = db.query(Progress).filter(Progress.id == f"{user.id}_{training.id}").one()
    assert progress.completed_at is None


def test_other_user_cannot_use_session(client, db, generator, training, user_headers, other_user, other_headers):
    session_id = _generate(client, user_headers, training.id)["sessionId"]
    mark_watched(db, other_user.id, training.id)

    response = client.post("/api/quiz/check", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "questionIndex": 0,
        "selectedIndices": [0],
    }, headers=other_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "permission-denied"

    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "answers": {"0": [0]},
    }, headers=other_headers)
    assert response.status_code == 403


def test_expired_session_is_rejected_and_removed(client, db, generator, training, user_headers, watched):
    session_id = _generate(client, user_headers, training.id)["sessionId"]

    record = db.query(QuizSession).filter(QuizSession.id == session_id).one()
    record.expires_at = datetime.utcnow() - timedelta(seconds=1)
    db.commit()

    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "sessionId": session_id,
        "answers": {"0": [0]},
    }, headers=user_headers)
    assert response.status_code == 504
    assert response.json()["code"] == "deadline-exceeded"

    db.expire_all()
    assert db.query(QuizSession).filter(QuizSession.id == session_id).first() is None


def test_generate_requires_configured_ai(client, app, settings, training, user_headers):
    app.dependency_overrides[get_quiz_generator] = lambda: FakeQuizGenerator(settings, configured=False)
    try:
        response = client.post("/api/quiz/generate", json={"trainingId": training.id}, headers=user_headers)
    finally:
        app.dependency_overrides.pop(get_quiz_generator, None)
    assert response.status_code == 400
    assert response.json() == {"detail": "AI service not configured.", "code": "failed-precondition"}


def test_generate_with_invalid_ai_output(client, app, settings, training, user_headers):
    app.dependency_overrides[get_quiz_generator] = lambda: FakeQuizGenerator(settings, response_text="not json")
    try:
        response = client.post("/api/quiz/generate", json={"trainingId": training.id}, headers=user_headers)
    finally:
        app.dependency_overrides.pop(get_quiz_generator, None)
    assert response.status_code == 500
    assert response.json()["code"] == "internal"


def test_generate_insufficient_content(client, db, generator, training, user_headers):
    training.transcript = ""
    training.title = "Short"
    training.description = "Too short"
    db.commit()

    response = client.post("/api/quiz/generate", json={"trainingId": training.id}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "failed-precondition"


def test_generate_unknown_training(client, generator, user_headers):
    response = client.post("/api/quiz/generate", json={"trainingId": 999}, headers=user_headers)
    assert response.status_code == 404


def test_upstream_failure_is_wrapped_as_internal(client, app, settings, training, user_headers):
    class FailingGenerator(FakeQuizGenerator):
        def _generate_ai_response(self, system_prompt, user_prompt):
            raise RuntimeError("model overloaded")

    app.dependency_overrides[get_quiz_generator] = lambda: FailingGenerator(settings)
    try:
        response = client.post("/api/quiz/generate", json={"trainingId": training.id}, headers=user_headers)
    finally:
        app.dependency_overrides.pop(get_quiz_generator, None)
    assert response.status_code == 500
    assert response.json() == {"detail": "model overloaded", "code": "internal"}


# Request validation and authentication

def test_requires_authentication(client, training):
    response = client.post("/api/quiz/submit", json={"trainingId": training.id, "answers": {}})
    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"


def test_rejects_invalid_token(client, training):
    response = client.post(
        "/api/quiz/submit",
        json={"trainingId": training.id, "answers": {}},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


def test_missing_answers_is_invalid_argument(client, training, user_headers):
    response = client.post("/api/quiz/submit", json={"trainingId": training.id}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "invalid-argument"


def test_check_answer_without_either_shape(client, training, user_headers):
    response = client.post("/api/quiz/check", json={"trainingId": training.id}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "invalid-argument"


def test_submission_requires_watched_training(client, legacy_quiz, training, user_headers):
    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "answers": {},
    }, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "failed-precondition"


# Legacy quizzes

def test_legacy_four_of_five_scores_80_and_fails(client, db, legacy_quiz, training, user, user_headers, watched):
    quiz, key = legacy_quiz
    question_ids = list(key)
    answers = {str(qid): [key[qid][0]] for qid in question_ids}
    answers[str(question_ids[-1])] = [key[question_ids[-1]][1]]

    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "answers": answers,
    }, headers=user_headers)
    assert response.status_code == 200, response.text
    assert response.json() == {"score": 80, "passed": False}

    db.expire_all()
    progress = db.query(Progress).filter(Progress.id == f"{user.id}_{training.id}").one()
    assert progress.score == 80
    assert progress.passed is False
    assert progress.completed_at is None


def test_legacy_all_correct_passes(client, legacy_quiz, training, user_headers, watched):
    quiz, key = legacy_quiz
    answers = {str(qid): [str(right)] for qid, (right, wrong) in key.items()}

    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "answers": answers,
    }, headers=user_headers)
    assert response.json() == {"score": 100, "passed": True}


def test_legacy_check_answer(client, legacy_quiz, training, user_headers):
    quiz, key = legacy_quiz
    question_id, (right, wrong) = next(iter(key.items()))

    response = client.post("/api/quiz/check", json={
        "trainingId": training.id,
        "questionId": question_id,
        "selectedAnswerIds": [wrong],
    }, headers=user_headers)
    assert response.status_code == 200, response.text
    assert response.json() == {"isCorrect": False, "correctAnswerIds": [right]}


def test_legacy_quiz_without_questions_is_not_found(client, db, training, user_headers, watched):
    db.add(Quiz(training_id=training.id))
    db.commit()

    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "answers": {},
    }, headers=user_headers)
    assert response.status_code == 404


def test_training_without_quiz_is_not_found(client, training, user_headers, watched):
    response = client.post("/api/quiz/submit", json={
        "trainingId": training.id,
        "answers": {},
    }, headers=user_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Quiz not found for this training."


def test_legacy_questions_hide_correctness(client, legacy_quiz, training, user_headers):
    response = client.get(f"/api/quiz/{training.id}", headers=user_headers)
    assert response.status_code == 200, response.text
    questions = response.json()["questions"]
    assert len(questions) == 5
    for question in questions:
        for answer in question["answers"]:
            assert set(answer) == {"id", "text"}
