import logging
import os
from typing import List

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database import SnapshotStore, StoreError, get_store
from ledger import BookingLedger, LedgerError
from schemas import (
    Booking,
    BookingResult,
    CancelResult,
    CreateBookingPayload,
    Movie,
    Show,
    SignupPayload,
    SignupResponse,
    Summary,
    UpdateBookingPayload,
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="CineLedger API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_ledger(store: SnapshotStore = Depends(get_store)) -> BookingLedger:
    return BookingLedger(store)


def raise_http(exc: LedgerError):
    raise HTTPException(status_code=exc.status_code, detail=exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Some error occurred"})


@app.get("/")
def root():
    return {"message": "CineLedger API is running"}


# Users
@app.post("/signup", response_model=SignupResponse, status_code=201)
def signup(payload: SignupPayload, ledger: BookingLedger = Depends(get_ledger)):
    try:
        user = ledger.signup(payload.email, username=payload.username, password=payload.password)
    except LedgerError as exc:
        raise_http(exc)
    return SignupResponse(user_id=user.id)


# Catalogue
@app.get("/movies", response_model=List[Movie])
def list_movies(ledger: BookingLedger = Depends(get_ledger)):
    return ledger.list_movies()


@app.get("/movies/{movie_id}", response_model=Movie)
def get_movie(movie_id: int, ledger: BookingLedger = Depends(get_ledger)):
    try:
        return ledger.get_movie(movie_id)
    except LedgerError as exc:
        raise_http(exc)


@app.get("/movies/{movie_id}/shows", response_model=List[Show])
def list_shows(movie_id: int, ledger: BookingLedger = Depends(get_ledger)):
    try:
        return ledger.list_shows(movie_id)
    except LedgerError as exc:
        raise_http(exc)


# Bookings
@app.post("/bookings/{user_id}", response_model=BookingResult)
def create_booking(user_id: int, payload: CreateBookingPayload, ledger: BookingLedger = Depends(get_ledger)):
    try:
        return ledger.create_booking(user_id, payload.movie_id, payload.show_id, payload.seats)
    except LedgerError as exc:
        raise_http(exc)


@app.get("/bookings/{user_id}", response_model=List[Booking])
def list_bookings(user_id: int, ledger: BookingLedger = Depends(get_ledger)):
    try:
        return ledger.list_bookings(user_id)
    except LedgerError as exc:
        raise_http(exc)


@app.get("/bookings/{user_id}/{booking_id}", response_model=Booking)
def get_booking(user_id: int, booking_id: str, ledger: BookingLedger = Depends(get_ledger)):
    try:
        return ledger.get_booking(user_id, booking_id)
    except LedgerError as exc:
        raise_http(exc)


@app.put("/bookings/{user_id}/{booking_id}", response_model=BookingResult, response_model_exclude_none=True)
def update_booking(
    user_id: int,
    booking_id: str,
    payload: UpdateBookingPayload,
    ledger: BookingLedger = Depends(get_ledger),
):
    try:
        return ledger.update_booking(user_id, booking_id, payload.seats)
    except LedgerError as exc:
        raise_http(exc)


@app.delete("/bookings/{user_id}/{booking_id}", response_model=CancelResult)
def cancel_booking(user_id: int, booking_id: str, ledger: BookingLedger = Depends(get_ledger)):
    try:
        return ledger.cancel_booking(user_id, booking_id)
    except LedgerError as exc:
        raise_http(exc)


@app.get("/summary/{user_id}", response_model=Summary)
def summary(user_id: int, ledger: BookingLedger = Depends(get_ledger)):
    try:
        return ledger.summarize(user_id)
    except LedgerError as exc:
        raise_http(exc)


# Simple health check
@app.get("/test")
def health_check(store: SnapshotStore = Depends(get_store)):
    response = {
        "backend": "✅ Running",
        "data_file": None,
        "data_status": "Not Available",
        "movies": 0,
        "users": 0,
    }
    try:
        response["data_file"] = str(store.path)
        snapshot = store.load()
        response["data_status"] = "Available"
        response["movies"] = len(snapshot.movies)
        response["users"] = len(snapshot.users)
    except StoreError as e:
        response["data_status"] = f"Error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
