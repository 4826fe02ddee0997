"""
Aggregation pipelines for the derived read views.

Every join runs inside MongoDB so a list view costs one round trip no matter
how many rows it returns. Builders are pure functions; the repository runs
them.
"""
from typing import Any, Dict, List

POPULAR_LIMIT = 6

Pipeline = List[Dict[str, Any]]

ENROLLED_STUDENTS = {"$subtract": ["$totalSeats", "$availableSeats"]}


def _class_info_by_id() -> Dict[str, Any]:
    # classId is stored as a string; a bad or missing one joins to nothing
    return {
        "$lookup": {
            "from": "classes",
            "let": {
                "classId": {
                    "$convert": {
                        "input": "$classId",
                        "to": "objectId",
                        "onError": None,
                        "onNull": None,
                    }
                }
            },
            "pipeline": [{"$match": {"$expr": {"$eq": ["$_id", "$$classId"]}}}],
            "as": "classInfo",
        }
    }


def _instructor_classes() -> Pipeline:
    return [
        {"$match": {"role": "instructor"}},
        {
            "$lookup": {
                "from": "classes",
                "localField": "email",
                "foreignField": "instructorEmail",
                "as": "classInfo",
            }
        },
    ]


def popular_classes_pipeline(limit: int = POPULAR_LIMIT) -> Pipeline:
    return [
        {"$addFields": {"enrolledStudents": ENROLLED_STUDENTS}},
        {"$sort": {"enrolledStudents": -1, "_id": 1}},
        {"$limit": limit},
    ]


def instructors_pipeline() -> Pipeline:
    return _instructor_classes()


def popular_instructors_pipeline(limit: int = POPULAR_LIMIT) -> Pipeline:
    """Instructors ranked by the students enrolled across all of their classes."""
    return _instructor_classes() + [
        {
            "$addFields": {
                "totalStudents": {
                    "$sum": {
                        "$map": {
                            "input": "$classInfo",
                            "as": "class",
                            "in": {
                                "$subtract": [
                                    "$$class.totalSeats",
                                    "$$class.availableSeats",
                                ]
                            },
                        }
                    }
                }
            }
        },
        {
            "$project": {
                "name": 1,
                "email": 1,
                "photoURL": 1,
                "classInfo": 1,
                "totalStudents": 1,
            }
        },
        {"$sort": {"totalStudents": -1, "_id": 1}},
        {"$limit": limit},
    ]


def booked_classes_pipeline(student_email: str) -> Pipeline:
    return [
        {"$match": {"studentEmail": student_email}},
        _class_info_by_id(),
    ]


def payments_pipeline(user_email: str, descending: bool = False) -> Pipeline:
    return [
        {"$match": {"userEmail": user_email}},
        _class_info_by_id(),
        {"$sort": {"_id": -1 if descending else 1}},
    ]
