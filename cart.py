"""
Cart and wishlist operations for the signed-in user.

Every function takes the database handle and the current user explicitly and
returns a result envelope from `schemas`; failures never raise to the caller.
"""
import logging
from typing import Optional

from database import serialize_doc, to_object_id, utcnow
from schemas import (
    CurrentUser,
    DroneSnapshot,
    InCartResult,
    InWishlistResult,
    ItemsResult,
    MutationResult,
)

logger = logging.getLogger(__name__)

CART = "cart_items"
WISHLIST = "wishlist_items"
DRONES = "droneslist"

NOT_AUTHENTICATED = "User not authenticated"
ALREADY_IN_WISHLIST = "Item already in wishlist"
WISHLIST_ITEM_NOT_FOUND = "Wishlist item not found"


def _error_text(e: Exception) -> str:
    return str(e) or "Unknown error"


def _row_filter(item_id: str, user: Optional[CurrentUser]) -> dict:
    query = {"_id": to_object_id(item_id)}
    if user is not None:
        query["user_id"] = user.id
    return query


def _drone_snapshot(db, drone_id: str) -> Optional[dict]:
    doc = db[DRONES].find_one(
        {"_id": to_object_id(drone_id)},
        {"name": 1, "image_url": 1, "price": 1, "in_stock": 1},
    )
    if not doc:
        return None
    return DroneSnapshot(**serialize_doc(doc)).model_dump()


def _user_items(db, collection: str, user: CurrentUser) -> list:
    cursor = db[collection].find({"user_id": user.id}).sort("created_at", -1)
    items = []
    for doc in cursor:
        item = serialize_doc(doc)
        item["drone"] = _drone_snapshot(db, item.get("drone_id"))
        items.append(item)
    return items


# ---------- Cart ----------

def add_to_cart(db, user: Optional[CurrentUser], drone_id: str, quantity: int = 1) -> MutationResult:
    """
    Add `quantity` units of a drone, creating the row or incrementing it.

    Done as one upsert on (user_id, drone_id) so repeated adds land on the
    same row. No upper bound is enforced here.
    """
    try:
        if user is None:
            return MutationResult(success=False, error=NOT_AUTHENTICATED)
        if quantity < 1:
            return MutationResult(success=False, error="Quantity must be at least 1")

        now = utcnow()
        db[CART].update_one(
            {"user_id": user.id, "drone_id": drone_id},
            {
                "$inc": {"quantity": quantity},
                "$set": {"updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )
        return MutationResult(success=True)
    except Exception as e:
        logger.error("Error adding to cart: %s", e)
        return MutationResult(success=False, error=_error_text(e))


def remove_from_cart(db, cart_item_id: str, user: Optional[CurrentUser] = None) -> MutationResult:
    try:
        db[CART].delete_one(_row_filter(cart_item_id, user))
        return MutationResult(success=True)
    except Exception as e:
        logger.error("Error removing from cart: %s", e)
        return MutationResult(success=False, error=_error_text(e))


def update_cart_quantity(db, cart_item_id: str, quantity: int,
                         user: Optional[CurrentUser] = None) -> MutationResult:
    """Set a row's quantity; zero or less removes the row instead."""
    try:
        if quantity <= 0:
            return remove_from_cart(db, cart_item_id, user)

        db[CART].update_one(
            _row_filter(cart_item_id, user),
            {"$set": {"quantity": quantity, "updated_at": utcnow()}},
        )
        return MutationResult(success=True)
    except Exception as e:
        logger.error("Error updating cart quantity: %s", e)
        return MutationResult(success=False, error=_error_text(e))


def get_cart_items(db, user: Optional[CurrentUser]) -> ItemsResult:
    try:
        if user is None:
            return ItemsResult(data=[], error=NOT_AUTHENTICATED)
        return ItemsResult(data=_user_items(db, CART, user))
    except Exception as e:
        logger.error("Error fetching cart items: %s", e)
        return ItemsResult(data=[], error=_error_text(e))


def is_drone_in_cart(db, user: Optional[CurrentUser], drone_id: str) -> InCartResult:
    try:
        if user is None:
            return InCartResult(in_cart=False, error=NOT_AUTHENTICATED)
        doc = db[CART].find_one({"user_id": user.id, "drone_id": drone_id}, {"_id": 1})
        return InCartResult(in_cart=doc is not None)
    except Exception as e:
        logger.error("Error checking if drone is in cart: %s", e)
        return InCartResult(in_cart=False, error=_error_text(e))


# ---------- Wishlist ----------

def add_to_wishlist(db, user: Optional[CurrentUser], drone_id: str) -> MutationResult:
    try:
        if user is None:
            return MutationResult(success=False, error=NOT_AUTHENTICATED)

        result = db[WISHLIST].update_one(
            {"user_id": user.id, "drone_id": drone_id},
            {"$setOnInsert": {"created_at": utcnow()}},
            upsert=True,
        )
        if result.upserted_id is None:
            return MutationResult(success=False, error=ALREADY_IN_WISHLIST)
        return MutationResult(success=True)
    except Exception as e:
        logger.error("Error adding to wishlist: %s", e)
        return MutationResult(success=False, error=_error_text(e))


def remove_from_wishlist(db, wishlist_item_id: str, user: Optional[CurrentUser] = None) -> MutationResult:
    try:
        db[WISHLIST].delete_one(_row_filter(wishlist_item_id, user))
        return MutationResult(success=True)
    except Exception as e:
        logger.error("Error removing from wishlist: %s", e)
        return MutationResult(success=False, error=_error_text(e))


def get_wishlist_items(db, user: Optional[CurrentUser]) -> ItemsResult:
    try:
        if user is None:
            return ItemsResult(data=[], error=NOT_AUTHENTICATED)
        return ItemsResult(data=_user_items(db, WISHLIST, user))
    except Exception as e:
        logger.error("Error fetching wishlist items: %s", e)
        return ItemsResult(data=[], error=_error_text(e))


def is_drone_in_wishlist(db, user: Optional[CurrentUser], drone_id: str) -> InWishlistResult:
    try:
        if user is None:
            return InWishlistResult(in_wishlist=False, error=NOT_AUTHENTICATED)
        doc = db[WISHLIST].find_one({"user_id": user.id, "drone_id": drone_id}, {"_id": 1})
        return InWishlistResult(in_wishlist=doc is not None)
    except Exception as e:
        logger.error("Error checking if drone is in wishlist: %s", e)
        return InWishlistResult(in_wishlist=False, error=_error_text(e))


def move_wishlist_to_cart(db, user: Optional[CurrentUser], wishlist_item_id: str,
                          quantity: int = 1) -> MutationResult:
    """
    Add the wishlisted drone to the cart, then drop the wishlist row.

    The two writes are independent: if the removal fails the drone stays in
    both lists and the error is returned.
    """
    try:
        if user is None:
            return MutationResult(success=False, error=NOT_AUTHENTICATED)

        item = db[WISHLIST].find_one(_row_filter(wishlist_item_id, user), {"drone_id": 1})
        if not item:
            return MutationResult(success=False, error=WISHLIST_ITEM_NOT_FOUND)

        added = add_to_cart(db, user, item["drone_id"], quantity)
        if not added.success:
            return added

        removed = remove_from_wishlist(db, wishlist_item_id, user)
        if not removed.success:
            logger.warning("Wishlist item %s added to cart but not removed: %s",
                           wishlist_item_id, removed.error)
        return removed
    except Exception as e:
        logger.error("Error moving wishlist item to cart: %s", e)
        return MutationResult(success=False, error=_error_text(e))
