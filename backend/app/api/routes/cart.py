from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import cart_service

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_item(item: models.CartItem) -> schemas.CartItem:
    result = schemas.CartItem.model_validate(item)
    result.expired = cart_service.is_expired(item)
    return result


@router.get("", response_model=schemas.Envelope[schemas.CartContents])
def get_cart(
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.require_roles("USER")),
):
    cart, items, total = cart_service.list_items(db, user.id)
    return {
        "success": True,
        "message": "Cart items retrieved successfully" if items else "Cart is empty",
        "data": schemas.CartContents(
            cart_id=cart.id if cart else None,
            items=[_cart_item(item) for item in items],
            total_items=len(items),
            total_price=total,
        ),
    }


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.Envelope[schemas.CartItem],
)
def add_to_cart(
    payload: schemas.CartItemCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.require_roles("USER")),
):
    item = cart_service.add_item(db, user.id, payload.slot_id)
    return {"success": True, "message": "Item added to cart successfully", "data": _cart_item(item)}


@router.delete("/clearCart", response_model=schemas.Envelope[schemas.CartCleared])
def clear_cart(
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.require_roles("USER")),
):
    deleted = cart_service.clear_cart(db, user.id)
    return {
        "success": True,
        "message": "Cart cleared successfully",
        "data": {"deleted_count": deleted},
    }


@router.delete("/{cart_item_id}", response_model=schemas.Envelope[None])
def remove_from_cart(
    cart_item_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.require_roles("USER")),
):
    cart_service.remove_item(db, user.id, cart_item_id)
    return {"success": True, "message": "Item removed from cart successfully"}
