import logging
from typing import Dict, Any, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database.database import get_db
from models.models import Training
from schemas.quiz_schema import (
    GenerateQuizRequest, GenerateQuizResponse, GeneratedQuestion,
    CheckAnswerRequest, CheckAnswerResponse,
    SubmitQuizRequest, SubmitQuizResponse, LegacyQuizResponse
)
from utils.auth import get_current_user_from_token, caller_id
from utils.errors import ServiceError, internal_error
from utils.legacy_quiz import LegacyQuizRepository
from utils.progress import get_progress, record_result
from utils.quiz_generator import QuizGenerator
from utils.scoring import is_correct, compute_score, has_passed
from utils.session_store import QuizSessionStore

logger = logging.getLogger(__name__)

router = APIRouter()

def get_quiz_generator(request: Request) -> QuizGenerator:
    return request.app.state.quiz_generator

def get_session_store(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> QuizSessionStore:
    return QuizSessionStore(db, ttl_minutes=settings.session_ttl_minutes)

def _as_indices(selection: List[Any]) -> List[int]:
    try:
        return [int(value) for value in selection]
    except (TypeError, ValueError):
        raise ServiceError("invalid-argument", "Selections must be option indices.")

def _as_ids(selection: List[Any]) -> List[str]:
    return [str(value) for value in selection]

@router.post("/generate", response_model=GenerateQuizResponse)
def generate_quiz(
    payload: GenerateQuizRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token),
    generator: QuizGenerator = Depends(get_quiz_generator),
    store: QuizSessionStore = Depends(get_session_store)
):
    """Generate a five-question quiz for a training; correct answers stay server-side."""
    user_id = caller_id(current_user)

    if not generator.is_configured:
        logger.error("Quiz generation requested but no AI provider is configured")
        raise ServiceError("failed-precondition", "AI service not configured.")

    try:
        training = db.query(Training).filter(Training.id == payload.training_id).first()
        if not training:
            raise ServiceError("not-found", "Training not found.")

        questions = generator.generate(training)

        answer_key = {index: q["correctAnswer"] for index, q in enumerate(questions)}
        session_id = store.create(user_id, training.id, answer_key)

        logger.info(
            f"Quiz generated: user={user_id} training={training.id} "
            f"session={session_id} questions={len(questions)}"
        )

        return GenerateQuizResponse(
            session_id=session_id,
            questions=[
                GeneratedQuestion(
                    id=index,
                    question=q["question"],
                    type=q["type"],
                    options=q["options"]
                )
                for index, q in enumerate(questions)
            ]
        )
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Error in generate_quiz")
        raise internal_error(e)

@router.post("/check", response_model=CheckAnswerResponse, response_model_exclude_none=True)
def check_answer(
    payload: CheckAnswerRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token),
    store: QuizSessionStore = Depends(get_session_store)
):
    """
    Check a single question before final submission.

    Nothing is persisted: the same question can be checked again.
    """
    user_id = caller_id(current_user)

    try:
        if payload.session_id:
            if payload.question_index is None or payload.selected_indices is None:
                raise ServiceError("invalid-argument", "questionIndex and selectedIndices are required.")

            session = store.get_owned(payload.session_id, user_id, payload.training_id)
            correct = QuizSessionStore.correct_for(session, payload.question_index)
            if correct is None:
                raise ServiceError("not-found", "Question not found in this quiz session.")

            return CheckAnswerResponse(
                is_correct=is_correct(payload.selected_indices, correct),
                correct_indices=correct
            )

        if payload.question_id is not None:
            if payload.selected_answer_ids is None:
                raise ServiceError("invalid-argument", "selectedAnswerIds is required.")

            repository = LegacyQuizRepository(db)
            correct_ids = repository.correct_answers_for_question(payload.training_id, payload.question_id)
            return CheckAnswerResponse(
                is_correct=is_correct(_as_ids(payload.selected_answer_ids), _as_ids(correct_ids)),
                correct_answer_ids=correct_ids
            )

        raise ServiceError("invalid-argument", "Either sessionId or questionId is required.")
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Error in check_answer")
        raise internal_error(e)

@router.post("/submit", response_model=SubmitQuizResponse)
def submit_quiz(
    payload: SubmitQuizRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token),
    settings: Settings = Depends(get_settings),
    store: QuizSessionStore = Depends(get_session_store)
):
    """Grade a quiz and record the result as the caller's progress."""
    user_id = caller_id(current_user)
    training_id = payload.training_id

    try:
        if settings.enforce_watched:
            progress = get_progress(db, user_id, training_id)
            if progress is None or not progress.watched:
                raise ServiceError("failed-precondition", "Watch the training before taking the quiz.")

        if payload.session_id:
            session = store.get_owned(payload.session_id, user_id, training_id)
            answer_key = session.answers or {}
            if not answer_key:
                raise ServiceError("not-found", "No questions found for this quiz session.")

            correct_count = sum(
                1 for index, correct in answer_key.items()
                if is_correct(_as_indices(payload.answers.get(index, [])), correct)
            )
            total_questions = len(answer_key)
            source = f"session={payload.session_id}"
        else:
            repository = LegacyQuizRepository(db)
            quiz = repository.find_quiz(training_id)
            answer_key = repository.correct_answers_by_question(quiz.id)

            correct_count = sum(
                1 for question_id, correct in answer_key.items()
                if is_correct(_as_ids(payload.answers.get(str(question_id), [])), _as_ids(correct))
            )
            total_questions = len(answer_key)
            source = f"quiz={quiz.id}"

        score = compute_score(correct_count, total_questions)
        passed = has_passed(score, settings.pass_threshold)
        record_result(db, user_id, training_id, score, passed)

        if payload.session_id:
            store.delete(payload.session_id)

        logger.info(
            f"Quiz submitted: user={user_id} training={training_id} {source} "
            f"score={score} passed={passed} correct={correct_count}/{total_questions}"
        )
        return SubmitQuizResponse(score=score, passed=passed)
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Error in submit_quiz")
        raise internal_error(e)

@router.get("/{training_id}", response_model=LegacyQuizResponse)
def get_legacy_quiz(
    training_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    """Authored quiz questions and options for a training, without correctness."""
    repository = LegacyQuizRepository(db)
    return LegacyQuizResponse(
        training_id=training_id,
        questions=repository.questions_for_client(training_id)
    )
