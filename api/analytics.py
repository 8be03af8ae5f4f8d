from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Dict, Any

from database.database import get_db
from models.models import User, Brand, Training, Progress
from schemas.analytics_schema import AnalyticsOverview
from utils.auth import get_current_admin

router = APIRouter()

@router.get("/overview", response_model=AnalyticsOverview)
def get_overview(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    """Completion statistics across all trainings."""
    total_users = db.query(User).count()
    trainings = db.query(Training).order_by(Training.id).all()
    brand_names = {brand.id: brand.name for brand in db.query(Brand).all()}
    active_trainings = len([t for t in trainings if t.is_active])

    stats = {
        t.id: {"starts": 0, "completions": 0, "total_score": 0, "score_count": 0}
        for t in trainings
    }

    total_starts = 0
    total_completions = 0
    records = db.query(Progress).all()
    for record in records:
        training_stats = stats.get(record.training_id)
        if training_stats is None:
            continue  # Progress for a deleted training

        if record.watched:
            training_stats["starts"] += 1
            total_starts += 1

        if record.passed:
            training_stats["completions"] += 1
            total_completions += 1

        if record.score is not None:
            training_stats["total_score"] += record.score
            training_stats["score_count"] += 1

    global_success_rate = (total_completions / total_starts * 100) if total_starts > 0 else 0

    training_stats = [
        {
            "training_id": t.id,
            "training_title": t.title,
            "brand_name": brand_names.get(t.brand_id, "Unknown"),
            "starts": stats[t.id]["starts"],
            "completions": stats[t.id]["completions"],
            "avg_score": (
                stats[t.id]["total_score"] / stats[t.id]["score_count"]
                if stats[t.id]["score_count"] > 0 else 0
            )
        }
        for t in trainings
    ]

    completed = [r for r in records if r.passed and r.completed_at]
    completed.sort(key=lambda r: r.completed_at, reverse=True)
    recent_activity = [
        {
            "user_id": r.user_id,
            "training_id": r.training_id,
            "score": r.score,
            "completed_at": r.completed_at
        }
        for r in completed[:10]
    ]

    return {
        "total_users": total_users,
        "active_trainings": active_trainings,
        "total_completions": total_completions,
        "global_success_rate": global_success_rate,
        "training_stats": training_stats,
        "recent_activity": recent_activity
    }
