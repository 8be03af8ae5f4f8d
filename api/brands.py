from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Dict, Any

from database.database import get_db
from models.models import Brand, Training
from schemas.training_schema import BrandCreate, BrandUpdate, BrandResponse
from utils.auth import get_current_user_from_token, get_current_admin
from utils.errors import ServiceError

router = APIRouter()

def _get_brand_or_404(db: Session, brand_id: int) -> Brand:
    brand = db.query(Brand).filter(Brand.id == brand_id).first()
    if not brand:
        raise ServiceError("not-found", "Brand not found")
    return brand

@router.get("/", response_model=List[BrandResponse])
def get_brands(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    """Get all brands in display order."""
    return db.query(Brand).order_by(Brand.order, Brand.id).all()

@router.get("/{brand_id}", response_model=BrandResponse)
def get_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    return _get_brand_or_404(db, brand_id)

@router.post("/", response_model=BrandResponse)
def create_brand(
    brand: BrandCreate,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    """Create a new brand."""
    db_brand = Brand(
        name=brand.name,
        description=brand.description,
        order=brand.order
    )
    db.add(db_brand)
    db.commit()
    db.refresh(db_brand)
    return db_brand

@router.put("/{brand_id}", response_model=BrandResponse)
def update_brand(
    brand_id: int,
    brand_update: BrandUpdate,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    db_brand = _get_brand_or_404(db, brand_id)
    for key, value in brand_update.model_dump(exclude_unset=True).items():
        setattr(db_brand, key, value)
    db.commit()
    db.refresh(db_brand)
    return db_brand

@router.delete("/{brand_id}")
def delete_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    """Delete a brand that has no trainings left."""
    db_brand = _get_brand_or_404(db, brand_id)
    if db.query(Training).filter(Training.brand_id == brand_id).count():
        raise ServiceError("failed-precondition", "Brand still has trainings.")
    db.delete(db_brand)
    db.commit()
    return {"success": True}
