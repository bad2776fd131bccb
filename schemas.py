"""
Database Schemas for the MADS storefront

Pydantic models that map to MongoDB collections, plus the result envelopes
returned by the cart/wishlist layer. Collection names are given in each
docstring since they do not all follow the lowercased class name.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field


class FAQ(BaseModel):
    """
    Frequently asked questions
    Collection: "faq"
    """
    question: str = Field(..., description="Question text")
    answer: str = Field(..., description="Answer text")
    is_active: bool = Field(True, description="Shown on the site when true")
    order: int = Field(0, description="Display position, ascending")


class Drone(BaseModel):
    """
    Drones in the catalog
    Collection: "droneslist"
    """
    name: str = Field(..., description="Model name")
    image_url: Optional[str] = Field(None, description="Product image URL")
    description: Optional[str] = Field(None, description="Marketing description")
    price: float = Field(..., ge=0, description="Price in USD")
    range: Optional[str] = Field(None, description="Operating range")
    flight_time: Optional[str] = Field(None, description="Flight time")
    max_speed: Optional[str] = Field(None, description="Maximum speed")
    payload: Optional[str] = Field(None, description="Payload capacity")
    in_stock: bool = Field(True, description="Stock availability")
    show: bool = Field(True, description="Listed in the catalog")
    produced: bool = Field(False, description="Production-ready model")
    quantity: int = Field(0, ge=0, description="Units available")
    quote: bool = Field(False, description="Sold by quote only")
    category: Optional[str] = Field(None, description="Product line")


class Position(BaseModel):
    """
    Job openings
    Collection: "positions"
    """
    title: str = Field(..., description="Job title")
    location_type: str = Field(..., description="Remote, Hybrid or On-site")
    employment_type: str = Field(..., description="Full-time, Part-time, Contract")
    caption: Optional[str] = Field(None, description="Short teaser")
    description: Optional[str] = Field(None, description="Full description")
    open: bool = Field(True, description="Accepting applications")


class Review(BaseModel):
    """
    Customer reviews
    Collection: "reviews"
    """
    name: str
    title: str
    body: str
    rating: int = Field(..., ge=1, le=5, description="Star rating 1-5")
    email: Optional[str] = None
    submitted_at: datetime


class CartItem(BaseModel):
    """
    Cart rows, one per (user, drone)
    Collection: "cart_items"
    """
    user_id: str = Field(..., description="Owner user id")
    drone_id: str = Field(..., description="Referenced drone id as string")
    quantity: int = Field(1, ge=1, description="Units in the cart")


class WishlistItem(BaseModel):
    """
    Wishlist rows, one per (user, drone)
    Collection: "wishlist_items"
    """
    user_id: str
    drone_id: str


class Contact(BaseModel):
    """
    Contact form submissions
    Collection: "contact"
    """
    first_name: str
    last_name: str
    email: EmailStr = Field(..., description="Email address")
    phone: str
    message: str = Field(..., max_length=500)
    created_at: datetime


class CurrentUser(BaseModel):
    """Authenticated user resolved from a session token."""
    id: str
    email: Optional[str] = None


# ---------- Result envelopes ----------

class DroneSnapshot(BaseModel):
    id: str
    name: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[float] = None
    in_stock: Optional[bool] = None


class MutationResult(BaseModel):
    success: bool
    error: Optional[str] = None


class ItemsResult(BaseModel):
    data: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None


class InCartResult(BaseModel):
    in_cart: bool = False
    error: Optional[str] = None


class InWishlistResult(BaseModel):
    in_wishlist: bool = False
    error: Optional[str] = None


class FunctionResponse(BaseModel):
    """Envelope returned by the form functions."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
