from typing import Dict, List, Any

from sqlalchemy.orm import Session

from models.models import Quiz, QuizQuestion, QuizAnswer
from utils.errors import ServiceError


class LegacyQuizRepository:
    """Read-only access to authored quizzes (quizzes, quiz_questions, quiz_answers)."""

    def __init__(self, db: Session):
        self.db = db

    def find_quiz(self, training_id: int) -> Quiz:
        quiz = (
            self.db.query(Quiz)
            .filter(Quiz.training_id == training_id)
            .order_by(Quiz.id)
            .first()
        )
        if not quiz:
            raise ServiceError("not-found", "Quiz not found for this training.")
        return quiz

    def correct_answers_by_question(self, quiz_id: int) -> Dict[int, List[int]]:
        """
        Correct answer ids for every question of a quiz.

        Questions with no option flagged correct map to an empty list.
        """
        question_ids = [
            row.id for row in
            self.db.query(QuizQuestion.id).filter(QuizQuestion.quiz_id == quiz_id).all()
        ]
        if not question_ids:
            raise ServiceError("not-found", "No questions found for this quiz.")

        answer_key: Dict[int, List[int]] = {question_id: [] for question_id in question_ids}
        rows = (
            self.db.query(QuizAnswer.id, QuizAnswer.question_id)
            .filter(QuizAnswer.question_id.in_(question_ids), QuizAnswer.is_correct.is_(True))
            .all()
        )
        for answer_id, question_id in rows:
            answer_key[question_id].append(answer_id)
        return answer_key

    def correct_answers_for_question(self, training_id: int, question_id: int) -> List[int]:
        quiz = self.find_quiz(training_id)
        question = (
            self.db.query(QuizQuestion)
            .filter(QuizQuestion.id == question_id, QuizQuestion.quiz_id == quiz.id)
            .first()
        )
        if not question:
            raise ServiceError("not-found", "Question not found for this training.")

        rows = (
            self.db.query(QuizAnswer.id)
            .filter(QuizAnswer.question_id == question.id, QuizAnswer.is_correct.is_(True))
            .all()
        )
        return [row.id for row in rows]

    def questions_for_client(self, training_id: int) -> List[Dict[str, Any]]:
        """Questions with their options; correctness is never included."""
        quiz = self.find_quiz(training_id)
        questions = (
            self.db.query(QuizQuestion)
            .filter(QuizQuestion.quiz_id == quiz.id)
            .order_by(QuizQuestion.id)
            .all()
        )
        if not questions:
            raise ServiceError("not-found", "No questions found for this quiz.")

        question_ids = [q.id for q in questions]
        options: Dict[int, List[Dict[str, Any]]] = {q.id: [] for q in questions}
        for answer in (
            self.db.query(QuizAnswer)
            .filter(QuizAnswer.question_id.in_(question_ids))
            .order_by(QuizAnswer.id)
            .all()
        ):
            options[answer.question_id].append({"id": answer.id, "text": answer.answer_text})

        return [
            {
                "id": q.id,
                "question": q.question,
                "type": q.type,
                "answers": options[q.id]
            }
            for q in questions
        ]
