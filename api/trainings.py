import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import List, Optional, Dict, Any

from database.database import get_db
from models.models import Brand, Training, Quiz, QuizSession, Progress
from schemas.training_schema import (
    TrainingCreate, TrainingUpdate, TrainingResponse, ProgressResponse, TranscriptResponse
)
from utils.auth import get_current_user_from_token, get_current_admin, caller_id
from utils.errors import ServiceError, internal_error
from utils.progress import get_progress, mark_watched, training_status
from utils.transcript import TranscriptFetcher, TranscriptError, find_youtube_url

logger = logging.getLogger(__name__)

router = APIRouter()

def get_transcript_fetcher(request: Request) -> TranscriptFetcher:
    return request.app.state.transcript_fetcher

def _get_training_or_404(db: Session, training_id: int) -> Training:
    training = db.query(Training).filter(Training.id == training_id).first()
    if not training:
        raise ServiceError("not-found", "Training not found")
    return training

def _to_response(training: Training) -> TrainingResponse:
    return TrainingResponse(
        id=training.id,
        brand_id=training.brand_id,
        title=training.title,
        description=training.description or "",
        media_files=training.media_files or [],
        media_url=training.media_url,
        thumbnail_url=training.thumbnail_url,
        is_active=bool(training.is_active),
        has_transcript=bool((training.transcript or "").strip()),
        created_at=training.created_at
    )

def _to_progress_response(progress: Optional[Progress], user_id: int, training_id: int) -> ProgressResponse:
    if progress is None:
        return ProgressResponse(user_id=user_id, training_id=training_id, status=training_status(None))
    return ProgressResponse(
        id=progress.id,
        user_id=progress.user_id,
        training_id=progress.training_id,
        watched=bool(progress.watched),
        score=progress.score,
        passed=bool(progress.passed),
        completed_at=progress.completed_at,
        status=training_status(progress)
    )

@router.get("/", response_model=List[TrainingResponse])
def get_trainings(
    brand_id: Optional[int] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    """Get trainings with optional brand filter."""
    query = db.query(Training)

    if brand_id:
        query = query.filter(Training.brand_id == brand_id)

    if not include_inactive:
        query = query.filter(Training.is_active.is_(True))

    return [_to_response(t) for t in query.order_by(Training.id).all()]

@router.get("/{training_id}", response_model=TrainingResponse)
def get_training(
    training_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    return _to_response(_get_training_or_404(db, training_id))

@router.post("/", response_model=TrainingResponse)
def create_training(
    training: TrainingCreate,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    """Create a new training under a brand."""
    if not db.query(Brand).filter(Brand.id == training.brand_id).first():
        raise ServiceError("not-found", "Brand not found")

    db_training = Training(
        brand_id=training.brand_id,
        title=training.title,
        description=training.description,
        media_files=[m.model_dump(mode="json", by_alias=True) for m in training.media_files],
        media_url=training.media_url,
        thumbnail_url=training.thumbnail_url,
        is_active=training.is_active,
        transcript=training.transcript
    )
    db.add(db_training)
    db.commit()
    db.refresh(db_training)
    return _to_response(db_training)

@router.put("/{training_id}", response_model=TrainingResponse)
def update_training(
    training_id: int,
    training_update: TrainingUpdate,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    db_training = _get_training_or_404(db, training_id)

    update_data = training_update.model_dump(exclude_unset=True)
    if "media_files" in update_data:
        update_data["media_files"] = [
            m.model_dump(mode="json", by_alias=True) for m in training_update.media_files or []
        ]
    if "brand_id" in update_data and not db.query(Brand).filter(Brand.id == update_data["brand_id"]).first():
        raise ServiceError("not-found", "Brand not found")

    for key, value in update_data.items():
        setattr(db_training, key, value)

    db.commit()
    db.refresh(db_training)
    return _to_response(db_training)

@router.delete("/{training_id}")
def delete_training(
    training_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    """Delete a training together with its progress records and open quiz sessions."""
    db_training = _get_training_or_404(db, training_id)
    if db.query(Quiz).filter(Quiz.training_id == training_id).count():
        raise ServiceError("failed-precondition", "Training still has an authored quiz.")

    db.query(Progress).filter(Progress.training_id == training_id).delete()
    db.query(QuizSession).filter(QuizSession.training_id == training_id).delete()
    db.delete(db_training)
    db.commit()
    return {"success": True}

@router.post("/{training_id}/watched", response_model=ProgressResponse)
def mark_training_watched(
    training_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    """Record that the caller watched the training for the minimum time."""
    _get_training_or_404(db, training_id)
    user_id = caller_id(current_user)
    progress = mark_watched(db, user_id, training_id)
    return _to_progress_response(progress, user_id, training_id)

@router.get("/{training_id}/progress", response_model=ProgressResponse)
def get_training_progress(
    training_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    """The caller's progress and derived status for a training."""
    user_id = caller_id(current_user)
    return _to_progress_response(get_progress(db, user_id, training_id), user_id, training_id)

@router.post("/{training_id}/transcript", response_model=TranscriptResponse)
def extract_transcript(
    training_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token),
    fetcher: TranscriptFetcher = Depends(get_transcript_fetcher)
):
    """Fetch YouTube captions for a training and store them as its transcript."""
    try:
        training = _get_training_or_404(db, training_id)

        url = find_youtube_url(training)
        if not url:
            raise ServiceError("failed-precondition", "No valid YouTube URL found in training.")

        logger.info(f"Extracting YouTube transcript for training {training_id} from {url}")
        try:
            transcript = fetcher.fetch_text(url)
        except TranscriptError as e:
            logger.error(f"Error fetching YouTube transcript: {e}")
            raise ServiceError("unavailable", f"Failed to extract transcript: {e}")

        training.transcript = transcript
        training.updated_at = datetime.now(timezone.utc)
        db.commit()

        logger.info(f"Extracted {len(transcript)} transcript characters for training {training_id}")
        return TranscriptResponse(success=True, transcript_length=len(transcript))
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Error in extract_transcript")
        raise internal_error(e)
