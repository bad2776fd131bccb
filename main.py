import os
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

# Database helpers
from database import create_document, ensure_indexes, utcnow

# Pydantic Schemas
from schemas import FAQ, CurrentUser, Drone, FunctionResponse, Position, Review

import cart
from auth import get_current_user, get_db, has_function_credential
from catalog import (
    use_drone_by_id,
    use_drones,
    use_faq,
    use_positions,
    use_reviews,
    use_similar_drones,
)
from forms import (
    dispatch_email,
    render_application_email,
    render_contact_email,
    save_contact,
    validate_application_submission,
    validate_contact_submission,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes()
    except PyMongoError as e:
        logger.warning("Could not create indexes: %s", e)
    yield


app = FastAPI(title="MADS Storefront API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

FUNCTION_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}
FUNCTION_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@app.get("/")
def read_root():
    return {"message": "MADS storefront backend running"}


@app.get("/test")
def test_database(db=Depends(get_db)):
    """Test endpoint to check if database is available and accessible"""
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }

    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["database_name"] = db.name if hasattr(db, 'name') else "✅ Connected"
            response["connection_status"] = "Connected"

            try:
                collections = db.list_collection_names()
                response["collections"] = collections[:10]
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "⚠️  Available but not initialized"

    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"

    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"

    return response


# Seed demo data if empty so the site has content
@app.post("/seed")
def seed_demo(db=Depends(get_db)):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")

    if db["droneslist"].find_one({}):
        return {"status": "ok", "message": "Catalog already seeded"}

    drones = [
        Drone(
            name="Sentinel X4",
            image_url="https://images.unsplash.com/photo-1473968512647-3e447244af8f?q=80&w=1200&auto=format&fit=crop",
            description="Coordinated survey quad for multi-agent mapping missions.",
            price=4899.0,
            range="8 km",
            flight_time="42 min",
            max_speed="72 km/h",
            payload="1.2 kg",
            in_stock=True,
            produced=True,
            quantity=14,
            category="survey",
        ),
        Drone(
            name="Relay R2",
            image_url="https://images.unsplash.com/photo-1508614589041-895b88991e3e?q=80&w=1200&auto=format&fit=crop",
            description="Mesh relay node that keeps the swarm linked beyond line of sight.",
            price=2199.0,
            range="12 km",
            flight_time="55 min",
            max_speed="60 km/h",
            payload="0.4 kg",
            in_stock=True,
            produced=True,
            quantity=30,
            category="survey",
        ),
        Drone(
            name="Atlas Heavy",
            description="Heavy-lift platform for industrial payloads. Available on request.",
            price=18500.0,
            range="5 km",
            flight_time="28 min",
            max_speed="50 km/h",
            payload="15 kg",
            in_stock=False,
            produced=False,
            quantity=0,
            quote=True,
            category="lift",
        ),
    ]
    for d in drones:
        create_document("droneslist", d, using=db)

    faqs = [
        FAQ(question="Do you ship internationally?", answer="Yes, to most countries.", order=2),
        FAQ(question="What does multi-agent mean?", answer="Several drones share one mission plan.", order=1),
        FAQ(question="Is training included?", answer="Every fleet purchase includes onboarding.", order=3),
    ]
    for f in faqs:
        create_document("faq", f, using=db)

    positions = [
        Position(title="Flight Software Engineer", location_type="Hybrid", employment_type="Full-time",
                 caption="Autonomy stack and swarm coordination."),
        Position(title="Field Test Pilot", location_type="On-site", employment_type="Contract",
                 caption="Fly pre-production airframes."),
    ]
    for p in positions:
        create_document("positions", p, using=db)

    now = utcnow()
    reviews = [
        Review(name="Priya N.", title="Mapped a quarry in an afternoon", body="Setup was painless.",
               rating=5, submitted_at=now - timedelta(days=3)),
        Review(name="Tom H.", title="Solid relay range", body="Held link across the whole site.",
               rating=4, submitted_at=now - timedelta(days=10)),
    ]
    for r in reviews:
        create_document("reviews", r, using=db)

    return {"status": "ok", "inserted": len(drones) + len(faqs) + len(positions) + len(reviews)}


# ---------- Catalog reads ----------

@app.get("/faq")
def list_faq(db=Depends(get_db)):
    return use_faq(db).as_dict()


@app.get("/drones")
def list_drones(db=Depends(get_db)):
    return use_drones(db).as_dict()


@app.get("/drones/{drone_id}")
def get_drone(drone_id: str, db=Depends(get_db)):
    return use_drone_by_id(db, drone_id).as_dict()


@app.get("/drones/{drone_id}/similar")
def list_similar_drones(drone_id: str, limit: int = Query(3, ge=1, le=12),
                        category: Optional[str] = None, db=Depends(get_db)):
    return use_similar_drones(db, drone_id, limit, category).as_dict()


@app.get("/positions")
def list_positions(db=Depends(get_db)):
    return use_positions(db).as_dict()


@app.get("/reviews")
def list_reviews(page: int = Query(1, ge=1), page_size: int = Query(5, ge=1, le=50),
                 db=Depends(get_db)):
    return use_reviews(db, page, page_size).as_dict()


# ---------- Cart & wishlist ----------

class AddToCartRequest(BaseModel):
    drone_id: str
    quantity: int = 1


class UpdateQuantityRequest(BaseModel):
    quantity: int


class AddToWishlistRequest(BaseModel):
    drone_id: str


class MoveToCartRequest(BaseModel):
    quantity: int = Field(1, ge=1)


def envelope(result: BaseModel):
    """200 on success, 401 when signed out, 400 for any other failure."""
    error = getattr(result, "error", None)
    if error is None:
        return result
    status = 401 if error == cart.NOT_AUTHENTICATED else 400
    return JSONResponse(result.model_dump(), status_code=status)


def signed_in(user: Optional[CurrentUser]) -> None:
    if user is None:
        raise HTTPException(status_code=401, detail=cart.NOT_AUTHENTICATED)


@app.get("/cart")
def read_cart(user: Optional[CurrentUser] = Depends(get_current_user), db=Depends(get_db)):
    return envelope(cart.get_cart_items(db, user))


@app.post("/cart")
def add_cart_item(payload: AddToCartRequest, user: Optional[CurrentUser] = Depends(get_current_user),
                  db=Depends(get_db)):
    return envelope(cart.add_to_cart(db, user, payload.drone_id, payload.quantity))


@app.patch("/cart/{item_id}")
def update_cart_item(item_id: str, payload: UpdateQuantityRequest,
                     user: Optional[CurrentUser] = Depends(get_current_user), db=Depends(get_db)):
    signed_in(user)
    return envelope(cart.update_cart_quantity(db, item_id, payload.quantity, user))


@app.delete("/cart/{item_id}")
def delete_cart_item(item_id: str, user: Optional[CurrentUser] = Depends(get_current_user),
                     db=Depends(get_db)):
    signed_in(user)
    return envelope(cart.remove_from_cart(db, item_id, user))


@app.get("/cart/contains/{drone_id}")
def cart_contains(drone_id: str, user: Optional[CurrentUser] = Depends(get_current_user),
                  db=Depends(get_db)):
    return envelope(cart.is_drone_in_cart(db, user, drone_id))


@app.get("/wishlist")
def read_wishlist(user: Optional[CurrentUser] = Depends(get_current_user), db=Depends(get_db)):
    return envelope(cart.get_wishlist_items(db, user))


@app.post("/wishlist")
def add_wishlist_item(payload: AddToWishlistRequest,
                      user: Optional[CurrentUser] = Depends(get_current_user), db=Depends(get_db)):
    return envelope(cart.add_to_wishlist(db, user, payload.drone_id))


@app.delete("/wishlist/{item_id}")
def delete_wishlist_item(item_id: str, user: Optional[CurrentUser] = Depends(get_current_user),
                         db=Depends(get_db)):
    signed_in(user)
    return envelope(cart.remove_from_wishlist(db, item_id, user))


@app.post("/wishlist/{item_id}/move-to-cart")
def move_wishlist_item(item_id: str, payload: Optional[MoveToCartRequest] = None,
                       user: Optional[CurrentUser] = Depends(get_current_user), db=Depends(get_db)):
    quantity = payload.quantity if payload else 1
    return envelope(cart.move_wishlist_to_cart(db, user, item_id, quantity))


@app.get("/wishlist/contains/{drone_id}")
def wishlist_contains(drone_id: str, user: Optional[CurrentUser] = Depends(get_current_user),
                      db=Depends(get_db)):
    return envelope(cart.is_drone_in_wishlist(db, user, drone_id))


# ---------- Form functions ----------

def function_response(status_code: int, **body) -> JSONResponse:
    return JSONResponse(
        FunctionResponse(**body).model_dump(exclude_none=True),
        status_code=status_code,
        headers=FUNCTION_CORS_HEADERS,
    )


async def read_function_request(request: Request, authorization: Optional[str]):
    """Shared preamble: preflight, credential, method, JSON body. Returns (response, data)."""
    if request.method == "OPTIONS":
        return PlainTextResponse("ok", headers=FUNCTION_CORS_HEADERS), None
    if not has_function_credential(authorization):
        return function_response(401, success=False, error="Missing or invalid authorization"), None
    if request.method != "POST":
        return function_response(405, success=False, error="Method not allowed"), None
    try:
        data = await request.json()
    except ValueError:
        return function_response(400, success=False, error="Invalid JSON body"), None
    if not isinstance(data, dict):
        return function_response(400, success=False, error="Invalid JSON body"), None
    return None, data


@app.api_route("/functions/v1/send-contact-email", methods=FUNCTION_METHODS)
async def send_contact_email(request: Request, authorization: Optional[str] = Header(None),
                             db=Depends(get_db)):
    early, data = await read_function_request(request, authorization)
    if early is not None:
        return early

    try:
        errors = validate_contact_submission(data)
        if errors:
            return function_response(400, success=False, error=", ".join(errors))

        saved = await run_in_threadpool(save_contact, db, data)
        if not saved:
            return function_response(
                500, success=False,
                error="Failed to save your message. Please try again later.",
            )

        name = f"{data['firstName']} {data['lastName']}"
        email_sent = dispatch_email(f"New Contact Form Submission from {name}", render_contact_email(data))
        logger.info("Contact form submission processed: name=%s email=%s email_sent=%s",
                    name, data["email"], email_sent)
        return function_response(
            200, success=True,
            message="Your message has been sent successfully. We'll get back to you soon!",
        )
    except Exception as e:
        logger.exception("Error processing contact form: %s", e)
        return function_response(
            500, success=False,
            error="An unexpected error occurred. Please try again later.",
        )


@app.api_route("/functions/v1/submit-application", methods=FUNCTION_METHODS)
async def submit_application(request: Request, authorization: Optional[str] = Header(None)):
    early, data = await read_function_request(request, authorization)
    if early is not None:
        return early

    try:
        errors = validate_application_submission(data)
        if errors:
            return function_response(400, success=False, error=", ".join(errors))

        subject = f"New Job Application: {data['positionTitle']} - {data['applicantName']}"
        if not dispatch_email(subject, render_application_email(data)):
            return function_response(
                500, success=False,
                error="Failed to submit application. Please try again later.",
            )

        logger.info("Job application processed: position=%s applicant=%s email=%s",
                    data["positionTitle"], data["applicantName"], data["applicantEmail"])
        return function_response(
            200, success=True,
            message="Your application has been submitted successfully. "
                    "We'll review it and get back to you soon!",
        )
    except Exception as e:
        logger.exception("Error processing job application: %s", e)
        return function_response(
            500, success=False,
            error="An unexpected error occurred. Please try again later.",
        )


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
