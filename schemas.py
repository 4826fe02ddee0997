"""
Database Schemas for the Ninja School booking platform

Each Pydantic model represents a MongoDB collection. Field names are stored
exactly as declared (camelCase) because the client app reads them back as-is.

Collections:
- users (roles: student, instructor, admin)
- classes (instructor submissions, approved or denied by an admin)
- bookedClasses (a student's selected classes)
- payments (completed card payments)
"""
from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, EmailStr, model_validator

Role = Literal["student", "instructor", "admin"]
ClassStatus = Literal["pending", "approved", "denied"]


class User(BaseModel):
    """
    Users collection schema
    Roles:
    - admin: approves classes and writes feedback
    - instructor: submits classes
    - student: books and pays for classes
    """
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    photoURL: Optional[str] = None
    role: Role = Field("student")


class SchoolClass(BaseModel):
    """Classes collection schema. Enrolled students = totalSeats - availableSeats."""
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1, max_length=200)
    instructorEmail: EmailStr
    instructorName: Optional[str] = None
    image: Optional[str] = None
    price: float = Field(0, ge=0)
    totalSeats: int = Field(..., ge=0)
    availableSeats: Optional[int] = Field(None, ge=0)
    status: ClassStatus = "pending"
    feedback: Optional[str] = None

    @model_validator(mode="after")
    def _check_seats(self):
        # a fresh class starts with every seat free
        if self.availableSeats is None:
            self.availableSeats = self.totalSeats
        if self.availableSeats > self.totalSeats:
            raise ValueError("availableSeats cannot exceed totalSeats")
        return self


class BookedClass(BaseModel):
    """A class a student has selected; extra booking metadata is kept as sent"""
    model_config = ConfigDict(extra="allow")

    studentEmail: EmailStr
    classId: str = Field(..., description="Class ObjectId as string")


class Payment(BaseModel):
    """Completed payments, immutable once recorded"""
    model_config = ConfigDict(extra="allow")

    userEmail: EmailStr
    classId: str = Field(..., description="Class ObjectId as string")
    price: float = Field(..., ge=0)
    transactionId: Optional[str] = None


class PaymentIntentBody(BaseModel):
    price: float = Field(..., gt=0)
