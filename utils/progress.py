from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.models import Progress

# Statuses shown next to each training
NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
FAILED = "failed"
PASSED = "passed"


def progress_id(user_id: int, training_id: int) -> str:
    return f"{user_id}_{training_id}"


def get_progress(db: Session, user_id: int, training_id: int) -> Optional[Progress]:
    return db.query(Progress).filter(Progress.id == progress_id(user_id, training_id)).first()


def _upsert(db: Session, user_id: int, training_id: int, **fields) -> Progress:
    """Merge-write: only the given fields change on an existing record."""
    record = get_progress(db, user_id, training_id)
    if record is None:
        values = {"watched": False, "passed": False, **fields}
        record = Progress(id=progress_id(user_id, training_id), user_id=user_id, training_id=training_id, **values)
        db.add(record)
        try:
            db.commit()
            db.refresh(record)
            return record
        except IntegrityError:
            # Another request created the record first; merge into it
            db.rollback()
            record = get_progress(db, user_id, training_id)

    for key, value in fields.items():
        setattr(record, key, value)

    db.commit()
    db.refresh(record)
    return record


def record_result(db: Session, user_id: int, training_id: int, score: int, passed: bool) -> Progress:
    """Store a quiz result; completed_at is set only when the quiz was passed."""
    return _upsert(
        db, user_id, training_id,
        score=score,
        passed=passed,
        completed_at=datetime.now(timezone.utc) if passed else None
    )


def mark_watched(db: Session, user_id: int, training_id: int) -> Progress:
    return _upsert(db, user_id, training_id, watched=True)


def training_status(progress: Optional[Progress]) -> str:
    if progress is None:
        return NOT_STARTED
    if not progress.watched:
        return IN_PROGRESS
    if progress.score is None:
        return IN_PROGRESS
    return PASSED if progress.passed else FAILED
