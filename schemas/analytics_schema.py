from typing import List, Optional
from datetime import datetime

from schemas.base_schema import CamelModel

class TrainingStats(CamelModel):
    training_id: int
    training_title: Optional[str] = None
    brand_name: str
    starts: int
    completions: int
    avg_score: float

class RecentCompletion(CamelModel):
    user_id: int
    training_id: int
    score: Optional[int] = None
    completed_at: Optional[datetime] = None

class AnalyticsOverview(CamelModel):
    total_users: int
    active_trainings: int
    total_completions: int
    global_success_rate: float
    training_stats: List[TrainingStats]
    recent_activity: List[RecentCompletion]
