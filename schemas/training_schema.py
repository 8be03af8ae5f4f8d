from typing import Optional, List, Literal
from datetime import datetime

from schemas.base_schema import CamelModel

class BrandBase(CamelModel):
    name: str
    description: Optional[str] = None
    order: int = 0

class BrandCreate(BrandBase):
    pass

class BrandUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None

class BrandResponse(BrandBase):
    id: int

class MediaFile(CamelModel):
    id: str
    type: Literal["video", "audio", "pdf", "youtube"]
    url: str
    file_name: str
    title: Optional[str] = None
    storage_path: Optional[str] = None
    uploaded_at: Optional[datetime] = None

class TrainingBase(CamelModel):
    brand_id: int
    title: str
    description: str = ""
    media_files: List[MediaFile] = []
    media_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_active: bool = True

class TrainingCreate(TrainingBase):
    transcript: Optional[str] = None

class TrainingUpdate(CamelModel):
    brand_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    media_files: Optional[List[MediaFile]] = None
    media_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_active: Optional[bool] = None
    transcript: Optional[str] = None

class TrainingResponse(TrainingBase):
    id: int
    has_transcript: bool = False
    created_at: Optional[datetime] = None

class ProgressResponse(CamelModel):
    id: Optional[str] = None
    user_id: int
    training_id: int
    watched: bool = False
    score: Optional[int] = None
    passed: bool = False
    completed_at: Optional[datetime] = None
    status: Literal["not_started", "in_progress", "failed", "passed"]

class TranscriptResponse(CamelModel):
    success: bool
    transcript_length: int
