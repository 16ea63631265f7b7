"""
Wardrobe Item API Routes
Read-only view of an item's ordered images, used by client fallback refreshes.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from studio.api.deps import get_current_user_id, get_db
from studio.models import ItemImageLink, WardrobeItem
from studio.schemas.job import ItemImageLinkResponse

router = APIRouter()


@router.get("/{item_id}/images", response_model=List[ItemImageLinkResponse])
async def get_item_images(
    item_id: str,
    response: Response,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Image links of an item in display order."""
    response.headers["Cache-Control"] = "no-store"
    item = db.query(WardrobeItem).filter(WardrobeItem.id == item_id).first()
    if not item or item.owner_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

    return (
        db.query(ItemImageLink)
        .filter(ItemImageLink.item_id == item_id)
        .order_by(ItemImageLink.sort_order, ItemImageLink.id)
        .all()
    )
