"""
Repository over the four Ninja School collections.

One instance is built at startup around a pymongo ``Database`` and shared
by every request through ``get_repository``.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import Request
from pydantic import BaseModel
from pymongo.database import Database

import pipelines
from database import create_document, get_documents

logger = logging.getLogger(__name__)

USERS = "users"
CLASSES = "classes"
BOOKED_CLASSES = "bookedClasses"
PAYMENTS = "payments"

Document = Dict[str, Any]


class NinjaSchoolRepository:
    def __init__(self, db: Database):
        self.db = db

    # Users
    def get_user_by_email(self, email: str) -> Optional[Document]:
        return self.db[USERS].find_one({"email": email})

    def create_user(self, user: Union[BaseModel, Document]) -> str:
        return create_document(self.db, USERS, user)

    # Classes
    def create_class(self, data: Union[BaseModel, Document]) -> str:
        doc = data.model_dump(exclude_none=True) if isinstance(data, BaseModel) else dict(data)
        # only an admin moves a class out of pending
        doc["status"] = "pending"
        doc.pop("feedback", None)
        return create_document(self.db, CLASSES, doc)

    def list_approved_classes(self) -> List[Document]:
        return get_documents(self.db, CLASSES, {"status": "approved"})

    def list_all_classes(self) -> List[Document]:
        return get_documents(self.db, CLASSES, sort=[("_id", -1)])

    def list_classes_by_instructor(self, email: str) -> List[Document]:
        return get_documents(self.db, CLASSES, {"instructorEmail": email})

    def update_class_status(self, class_id: str, status: str) -> Document:
        result = self.db[CLASSES].update_one(
            {"_id": ObjectId(class_id)}, {"$set": {"status": status}}
        )
        return _update_counts(result)

    def set_class_feedback(self, class_id: str, message: str) -> Document:
        result = self.db[CLASSES].update_one(
            {"_id": ObjectId(class_id)}, {"$set": {"feedback": message}}
        )
        return _update_counts(result)

    def decrement_seat(self, class_id: str) -> Document:
        """
        Take one seat from a class with a single atomic ``$inc``.

        The filter only matches while seats remain, so concurrent bookings
        can never push ``availableSeats`` below zero. Zero matched means the
        class does not exist or is full.
        """
        result = self.db[CLASSES].update_one(
            {"_id": ObjectId(class_id), "availableSeats": {"$gt": 0}},
            {"$inc": {"availableSeats": -1}},
        )
        if result.matched_count == 0:
            logger.info("No seat taken for class %s (missing or full)", class_id)
        return _update_counts(result)

    # Bookings
    def create_booking(self, data: Union[BaseModel, Document]) -> str:
        return create_document(self.db, BOOKED_CLASSES, data)

    def delete_booking(self, booked_class_id: str) -> int:
        result = self.db[BOOKED_CLASSES].delete_one({"_id": ObjectId(booked_class_id)})
        return result.deleted_count

    # Payments
    def record_payment(self, data: Union[BaseModel, Document]) -> str:
        return create_document(self.db, PAYMENTS, data)

    # Aggregated views
    def popular_classes(self) -> List[Document]:
        return list(self.db[CLASSES].aggregate(pipelines.popular_classes_pipeline()))

    def instructors(self) -> List[Document]:
        return list(self.db[USERS].aggregate(pipelines.instructors_pipeline()))

    def popular_instructors(self) -> List[Document]:
        return list(self.db[USERS].aggregate(pipelines.popular_instructors_pipeline()))

    def booked_classes(self, student_email: str) -> List[Document]:
        return list(
            self.db[BOOKED_CLASSES].aggregate(pipelines.booked_classes_pipeline(student_email))
        )

    def payments(self, user_email: str, descending: bool = False) -> List[Document]:
        return list(
            self.db[PAYMENTS].aggregate(pipelines.payments_pipeline(user_email, descending))
        )

    def ping(self) -> List[str]:
        self.db.command("ping")
        return self.db.list_collection_names()


def _update_counts(result) -> Document:
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
    }


def get_repository(request: Request) -> NinjaSchoolRepository:
    return request.app.state.repository
