import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List

import stripe
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.errors import PyMongoError

import config
from auth import create_access_token, get_current_user, require_admin
from database import connect
from payments import StripePaymentGateway, get_payment_gateway
from repository import NinjaSchoolRepository, get_repository
from schemas import BookedClass, ClassStatus, Payment, PaymentIntentBody, SchoolClass, User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client, db = connect(config.DATABASE_URL, config.DATABASE_NAME)
    app.state.repository = NinjaSchoolRepository(db)
    app.state.payments = StripePaymentGateway(config.STRIPE_SECRET_KEY)
    logger.info("Ninja School Server listening on port %s", config.PORT)
    yield
    client.close()
    logger.info("MongoDB client closed.")


app = FastAPI(title="Ninja School API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Utilities

def _oid(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    doc = dict(doc)
    if doc.get("_id") is not None:
        doc["id"] = str(doc.pop("_id"))
    for k, v in list(doc.items()):
        if isinstance(v, datetime):
            doc[k] = v.isoformat()
        elif isinstance(v, ObjectId):
            doc[k] = str(v)
        elif k == "classInfo" and isinstance(v, list):
            doc[k] = [_oid(c) for c in v]
    return doc


def _oids(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [_oid(d) for d in docs]


# Error mapping

@app.exception_handler(InvalidId)
async def invalid_id_handler(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"detail": "Invalid id"})


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error("Database failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=502, content={"error": True, "message": "Database unavailable"})


@app.exception_handler(stripe.StripeError)
async def payment_error_handler(request: Request, exc: stripe.StripeError):
    logger.error("Payment provider failure: %s", exc)
    return JSONResponse(status_code=502, content={"error": True, "message": "Payment provider error"})


@app.get("/", response_class=PlainTextResponse)
def root():
    return "Ninja School Server is running."


@app.get("/test")
def test_database(repo: NinjaSchoolRepository = Depends(get_repository)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": config.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = repo.ping()
        response["connection_status"] = "Connected"
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️ Error: {str(e)[:100]}"
    return response


# Auth

@app.post("/jwt")
def issue_token(payload: Dict[str, Any] = Body(...)):
    return {"token": create_access_token(payload)}


# Payments

@app.post("/create-payment-intent")
def create_payment_intent(
    body: PaymentIntentBody,
    current=Depends(get_current_user),
    gateway: StripePaymentGateway = Depends(get_payment_gateway),
):
    amount = round(body.price * 100)
    return {"clientSecret": gateway.create_payment_intent(amount)}


@app.post("/payment")
def record_payment(
    body: Payment,
    current=Depends(get_current_user),
    repo: NinjaSchoolRepository = Depends(get_repository),
):
    return {"id": repo.record_payment(body)}


@app.get("/payments/{userEmail}")
def list_payments(
    userEmail: str,
    sort: bool = Query(False, description="true for newest first"),
    current=Depends(get_current_user),
    repo: NinjaSchoolRepository = Depends(get_repository),
):
    return _oids(repo.payments(userEmail, descending=sort))


# Users

@app.get("/users/{userEmail}")
def get_user(userEmail: str, repo: NinjaSchoolRepository = Depends(get_repository)):
    user = repo.get_user_by_email(userEmail)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _oid(user)


@app.post("/user")
def create_user(body: User, repo: NinjaSchoolRepository = Depends(get_repository)):
    if repo.get_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    return {"id": repo.create_user(body)}


# Classes

@app.post("/classes")
def create_class(body: SchoolClass, repo: NinjaSchoolRepository = Depends(get_repository)):
    return {"id": repo.create_class(body)}


@app.get("/classes")
def list_approved_classes(repo: NinjaSchoolRepository = Depends(get_repository)):
    return _oids(repo.list_approved_classes())


@app.get("/allClasses")
def list_all_classes(repo: NinjaSchoolRepository = Depends(get_repository)):
    return _oids(repo.list_all_classes())


@app.get("/classes/{instructorEmail}")
def list_instructor_classes(
    instructorEmail: str,
    current=Depends(get_current_user),
    repo: NinjaSchoolRepository = Depends(get_repository),
):
    return _oids(repo.list_classes_by_instructor(instructorEmail))


@app.get("/popularClasses")
def popular_classes(repo: NinjaSchoolRepository = Depends(get_repository)):
    return _oids(repo.popular_classes())


@app.put("/classes/{classId}")
def take_seat(
    classId: str,
    current=Depends(get_current_user),
    repo: NinjaSchoolRepository = Depends(get_repository),
):
    return repo.decrement_seat(classId)


@app.patch("/changeClassStatus/{classId}")
def change_class_status(
    classId: str,
    status: ClassStatus = Query(...),
    current=Depends(require_admin),
    repo: NinjaSchoolRepository = Depends(get_repository),
):
    return repo.update_class_status(classId, status)


@app.patch("/feedback/{classId}")
def set_feedback(
    classId: str,
    message: str = Query(...),
    current=Depends(require_admin),
    repo: NinjaSchoolRepository = Depends(get_repository),
):
    return repo.set_class_feedback(classId, message)


# Booked classes

@app.post("/bookedClass")
def book_class(body: BookedClass, repo: NinjaSchoolRepository = Depends(get_repository)):
    return {"id": repo.create_booking(body)}


@app.get("/bookedClasses/{studentEmail}")
def list_booked_classes(studentEmail: str, repo: NinjaSchoolRepository = Depends(get_repository)):
    return _oids(repo.booked_classes(studentEmail))


@app.delete("/bookedClasses/{bookedClassId}")
def delete_booked_class(
    bookedClassId: str,
    current=Depends(get_current_user),
    repo: NinjaSchoolRepository = Depends(get_repository),
):
    if repo.delete_booking(bookedClassId) == 0:
        raise HTTPException(status_code=404, detail="Booked class not found.")
    return {"status": "deleted"}


# Instructors

@app.get("/instructors")
def list_instructors(repo: NinjaSchoolRepository = Depends(get_repository)):
    return _oids(repo.instructors())


@app.get("/instructors/popular")
def popular_instructors(repo: NinjaSchoolRepository = Depends(get_repository)):
    return _oids(repo.popular_instructors())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
