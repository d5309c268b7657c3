import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nutramitra.auth.dependencies import require_admin
from nutramitra.core.config import settings
from nutramitra.core.exceptions import ConflictError, NotFoundError, ValidationError
from nutramitra.core.media import get_media_host
from nutramitra.db.models import Fruit, get_db
from nutramitra.schemas import CATEGORIES, FruitCreate, FruitUpdate, UpdateImageBody
from nutramitra.search import filter_items, related_items, sort_items

logger = logging.getLogger(__name__)

router = APIRouter()

DUPLICATE_NAME = "A fruit with this name already exists"


def serialize_fruit(fruit):
    return {
        "id": fruit.id,
        "name": fruit.name,
        "category": fruit.category,
        "description": fruit.description,
        "calories": fruit.calories,
        "vitamins": fruit.vitamins or [],
        "minerals": fruit.minerals or {},
        "healthBenefits": fruit.health_benefits or [],
        "seasonalAvailability": fruit.seasonal_availability,
        "isOrganic": fruit.is_organic,
        "originStory": fruit.origin_story,
        "imageUrl": fruit.image_url,
        "imagePublicId": fruit.image_public_id,
        "createdAt": fruit.created_at,
        "updatedAt": fruit.updated_at,
    }


def parse_fruit_id(fruit_id: Optional[str]) -> str:
    try:
        return uuid.UUID(fruit_id).hex
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("Invalid fruit ID format")


async def get_fruit_or_404(db: AsyncSession, fruit_id: str) -> Fruit:
    fruit = await db.get(Fruit, parse_fruit_id(fruit_id))
    if fruit is None:
        raise NotFoundError("Fruit not found")
    return fruit


async def _commit_or_conflict(db: AsyncSession):
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_NAME)


async def _all_fruits(db: AsyncSession):
    res = await db.execute(select(Fruit).order_by(Fruit.created_at.desc()))
    return res.scalars().all()


@router.get("")
async def list_fruits(
    search: Optional[str] = None,
    category: Optional[str] = None,
    organic: bool = False,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    db: AsyncSession = Depends(get_db),
):
    if category and category != "all" and category not in CATEGORIES:
        raise ValidationError("Category must be either 'fruit' or 'vegetable'")

    fruits = await _all_fruits(db)
    fruits = sort_items(filter_items(fruits, search or "", category or "all", organic), sort_by)
    return {"fruits": [serialize_fruit(f) for f in fruits]}


@router.post("/create-fruit", status_code=201, dependencies=[Depends(require_admin)])
async def create_fruit(body: FruitCreate, db: AsyncSession = Depends(get_db)):
    fruit = Fruit(**body.model_dump())
    db.add(fruit)
    await _commit_or_conflict(db)
    await db.refresh(fruit)

    logger.info("Created %s %s (%s)", fruit.category, fruit.name, fruit.id)
    return {
        "message": "Fruit created successfully",
        "fruit": serialize_fruit(fruit),
        "note": "To upload an image for this fruit, use /fruits/upload-image with the fruit ID",
    }


@router.post("/upload-image", dependencies=[Depends(require_admin)])
async def upload_image(
    file: Optional[UploadFile] = File(None),
    fruit_id: Optional[str] = Form(None, alias="fruitId"),
    db: AsyncSession = Depends(get_db),
    media_host=Depends(get_media_host),
):
    if file is None:
        raise ValidationError("No image file provided")
    if not fruit_id:
        raise ValidationError("Fruit ID is required")
    if not (file.content_type or "").startswith("image/"):
        raise ValidationError("File must be an image")

    too_large = ValidationError("File size must be less than 10MB")
    if file.size is not None and file.size > settings.MAX_IMAGE_SIZE:
        raise too_large
    # One byte past the limit is enough to know it is over
    data = await file.read(settings.MAX_IMAGE_SIZE + 1)
    if len(data) > settings.MAX_IMAGE_SIZE:
        raise too_large

    fruit = await get_fruit_or_404(db, fruit_id)
    result = await media_host.upload(f"fruit-images/fruit_{fruit.id}", data, file.content_type)

    return {
        "message": "Image uploaded successfully",
        "imageUrl": result["url"],
        "publicId": result["public_id"],
    }


@router.put("/update-image", dependencies=[Depends(require_admin)])
async def update_image(body: UpdateImageBody, db: AsyncSession = Depends(get_db)):
    fruit = await get_fruit_or_404(db, body.fruit_id)
    fruit.image_url = body.image_url
    if body.public_id:
        fruit.image_public_id = body.public_id
    await db.commit()
    await db.refresh(fruit)

    return {"message": "Fruit image updated successfully", "fruit": serialize_fruit(fruit)}


@router.get("/{fruit_id}")
async def get_fruit(fruit_id: str, db: AsyncSession = Depends(get_db)):
    fruit = await get_fruit_or_404(db, fruit_id)
    return {"fruit": serialize_fruit(fruit)}


@router.get("/{fruit_id}/related")
async def get_related(fruit_id: str, limit: int = Query(4, ge=1, le=20), db: AsyncSession = Depends(get_db)):
    fruit = await get_fruit_or_404(db, fruit_id)
    related = related_items(fruit, await _all_fruits(db), limit=limit)
    return {"fruits": [serialize_fruit(f) for f in related]}


@router.put("/{fruit_id}", dependencies=[Depends(require_admin)])
async def update_fruit(fruit_id: str, body: FruitUpdate, db: AsyncSession = Depends(get_db)):
    fruit = await get_fruit_or_404(db, fruit_id)
    for field, value in body.changes().items():
        setattr(fruit, field, value)
    await _commit_or_conflict(db)
    await db.refresh(fruit)

    return {"message": "Fruit updated successfully", "fruit": serialize_fruit(fruit)}


@router.delete("/{fruit_id}", dependencies=[Depends(require_admin)])
async def delete_fruit(fruit_id: str, db: AsyncSession = Depends(get_db)):
    parsed = parse_fruit_id(fruit_id)
    res = await db.execute(delete(Fruit).where(Fruit.id == parsed))
    await db.commit()
    if not res.rowcount:
        raise NotFoundError("Fruit not found")

    logger.info("Deleted fruit %s", parsed)
    return {"message": "Fruit deleted successfully"}
