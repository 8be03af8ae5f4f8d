import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Callable

from sqlalchemy.orm import Session

from models.models import QuizSession
from utils.errors import ServiceError

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 10


def utcnow() -> datetime:
    # Stored naive so that SQLite round-trips compare cleanly
    return datetime.now(timezone.utc).replace(tzinfo=None)


class QuizSessionStore:
    """
    Short-lived answer keys for AI-generated quizzes.

    Expiry is checked on read; an expired session is deleted the first time
    it is looked up.
    """

    def __init__(
        self,
        db: Session,
        ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock

    def create(self, user_id: int, training_id: int, answer_key: Dict[int, List[int]]) -> str:
        """Store an answer key and return the new session id."""
        session_id = uuid.uuid4().hex
        now = self.clock()
        record = QuizSession(
            id=session_id,
            user_id=user_id,
            training_id=training_id,
            answers={str(index): list(correct) for index, correct in answer_key.items()},
            created_at=now,
            expires_at=now + self.ttl
        )
        self.db.add(record)
        self.db.commit()
        return session_id

    def get(self, session_id: str) -> QuizSession:
        record = self.db.query(QuizSession).filter(QuizSession.id == session_id).first()
        if not record:
            raise ServiceError("not-found", "Quiz session not found. Please restart the quiz.")

        if self.clock() > record.expires_at:
            logger.info(f"Quiz session {session_id} expired at {record.expires_at}, deleting")
            self.db.delete(record)
            self.db.commit()
            raise ServiceError("deadline-exceeded", "Quiz session expired. Please restart the quiz.")

        return record

    def get_owned(self, session_id: str, user_id: int, training_id: int) -> QuizSession:
        """Fetch a session, rejecting callers that did not generate it."""
        record = self.get(session_id)
        if record.user_id != user_id or record.training_id != training_id:
            raise ServiceError("permission-denied", "This quiz session does not belong to you.")
        return record

    def delete(self, session_id: str) -> None:
        record = self.db.query(QuizSession).filter(QuizSession.id == session_id).first()
        if record:
            self.db.delete(record)
            self.db.commit()

    @staticmethod
    def correct_for(record: QuizSession, question_index: int) -> Optional[List[int]]:
        return (record.answers or {}).get(str(question_index))
