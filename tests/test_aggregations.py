"""
Aggregated views run against a live MongoDB.

Set MONGODB_TEST_URL to point at a server (defaults to localhost). Each run
works in a throwaway database; the module is skipped when no server answers.
"""
import os
from uuid import uuid4

import pytest
from bson import ObjectId
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from repository import BOOKED_CLASSES, CLASSES, PAYMENTS, USERS, NinjaSchoolRepository

pytestmark = pytest.mark.mongodb

MONGODB_TEST_URL = os.getenv("MONGODB_TEST_URL", "mongodb://localhost:27017")


@pytest.fixture(scope="module")
def mongo_db():
    client = MongoClient(MONGODB_TEST_URL, serverSelectionTimeoutMS=1000)
    try:
        client.admin.command("ping")
    except PyMongoError:
        client.close()
        pytest.skip(f"MongoDB not reachable at {MONGODB_TEST_URL}")
    name = f"ninja_school_test_{uuid4().hex[:8]}"
    yield client[name]
    client.drop_database(name)
    client.close()


@pytest.fixture
def store(mongo_db):
    for name in (USERS, CLASSES, BOOKED_CLASSES, PAYMENTS):
        mongo_db[name].delete_many({})
    return NinjaSchoolRepository(mongo_db)


def _add_class(store, title, total, available, instructor="t@ninja.school"):
    doc = {
        "_id": ObjectId(),
        "title": title,
        "instructorEmail": instructor,
        "totalSeats": total,
        "availableSeats": available,
        "status": "approved",
    }
    store.db[CLASSES].insert_one(doc)
    return doc["_id"]


class TestPopularClasses:
    def test_busier_class_comes_first(self, store):
        a = _add_class(store, "A", total=10, available=3)
        b = _add_class(store, "B", total=5, available=5)

        result = store.popular_classes()

        assert [c["_id"] for c in result] == [a, b]
        assert [c["enrolledStudents"] for c in result] == [7, 0]

    def test_top_six_in_non_increasing_order(self, store):
        seats = [(10, 9), (10, 2), (8, 8), (20, 5), (6, 0), (10, 4), (12, 6), (3, 1)]
        for i, (total, available) in enumerate(seats):
            _add_class(store, f"C{i}", total, available)

        result = store.popular_classes()

        assert len(result) == 6
        enrolled = [c["enrolledStudents"] for c in result]
        assert enrolled == sorted(enrolled, reverse=True)
        assert enrolled == [15, 8, 6, 6, 6, 2]
        for c in result:
            assert c["enrolledStudents"] == c["totalSeats"] - c["availableSeats"]

    def test_ties_keep_insertion_order(self, store):
        first = _add_class(store, "First", total=4, available=2)
        second = _add_class(store, "Second", total=7, available=5)
        third = _add_class(store, "Third", total=2, available=0)

        assert [c["_id"] for c in store.popular_classes()] == [first, second, third]


class TestInstructors:
    @pytest.fixture
    def staff(self, store):
        store.db[USERS].insert_many(
            [
                {"name": "Busy", "email": "busy@ninja.school", "role": "instructor", "photoURL": "b.png"},
                {"name": "New", "email": "new@ninja.school", "role": "instructor"},
                {"name": "Kid", "email": "kid@ninja.school", "role": "student"},
            ]
        )
        _add_class(store, "Kata", total=10, available=4, instructor="busy@ninja.school")
        _add_class(store, "Shuriken", total=5, available=5, instructor="busy@ninja.school")
        _add_class(store, "Orphan", total=9, available=1, instructor="gone@ninja.school")
        return store

    def test_all_instructors_left_joined(self, staff):
        result = {u["email"]: u for u in staff.instructors()}

        assert set(result) == {"busy@ninja.school", "new@ninja.school"}
        assert sorted(c["title"] for c in result["busy@ninja.school"]["classInfo"]) == ["Kata", "Shuriken"]
        assert result["new@ninja.school"]["classInfo"] == []

    def test_popular_instructors_total_students(self, staff):
        result = staff.popular_instructors()

        assert [u["email"] for u in result] == ["busy@ninja.school", "new@ninja.school"]
        busy, new = result
        assert busy["totalStudents"] == 6
        assert busy["totalStudents"] == sum(
            c["totalSeats"] - c["availableSeats"] for c in busy["classInfo"]
        )
        assert busy["photoURL"] == "b.png"
        assert new["totalStudents"] == 0
        assert new["classInfo"] == []
        assert "role" not in busy

    def test_popular_instructors_limited_to_six(self, store):
        store.db[USERS].insert_many(
            [{"name": f"T{i}", "email": f"t{i}@ninja.school", "role": "instructor"} for i in range(8)]
        )
        for i in range(8):
            _add_class(store, f"C{i}", total=10, available=10 - i, instructor=f"t{i}@ninja.school")

        result = store.popular_instructors()

        assert [u["totalStudents"] for u in result] == [7, 6, 5, 4, 3, 2]


class TestClassJoins:
    def test_booked_classes_embed_their_class(self, store):
        kata = _add_class(store, "Kata", total=10, available=3)
        store.db[BOOKED_CLASSES].insert_many(
            [
                {"studentEmail": "kid@ninja.school", "classId": str(kata)},
                {"studentEmail": "other@ninja.school", "classId": str(kata)},
            ]
        )

        result = store.booked_classes("kid@ninja.school")

        assert len(result) == 1
        assert [c["_id"] for c in result[0]["classInfo"]] == [kata]
        assert result[0]["classInfo"][0]["_id"] == ObjectId(result[0]["classId"])

    @pytest.mark.parametrize(
        "booking",
        [{"classId": str(ObjectId())}, {"classId": "not-an-id"}, {}],
        ids=["unknown-id", "malformed-id", "no-class-id"],
    )
    def test_unresolvable_class_gives_empty_info(self, store, booking):
        _add_class(store, "Kata", total=10, available=3)
        store.db[BOOKED_CLASSES].insert_one({"studentEmail": "kid@ninja.school", **booking})

        result = store.booked_classes("kid@ninja.school")

        assert len(result) == 1
        assert result[0]["classInfo"] == []

    def test_payments_join_and_sort(self, store):
        kata = _add_class(store, "Kata", total=10, available=3)
        first = store.db[PAYMENTS].insert_one({"userEmail": "kid@ninja.school", "classId": str(kata), "price": 20}).inserted_id
        second = store.db[PAYMENTS].insert_one({"userEmail": "kid@ninja.school", "classId": "bad", "price": 5}).inserted_id
        store.db[PAYMENTS].insert_one({"userEmail": "other@ninja.school", "classId": str(kata), "price": 20})

        oldest_first = store.payments("kid@ninja.school")
        newest_first = store.payments("kid@ninja.school", descending=True)

        assert [p["_id"] for p in oldest_first] == [first, second]
        assert [p["_id"] for p in newest_first] == [second, first]
        assert oldest_first[0]["classInfo"][0]["title"] == "Kata"
        assert oldest_first[1]["classInfo"] == []


class TestSeatDecrement:
    def test_last_seat_then_full(self, store):
        kata = _add_class(store, "Kata", total=2, available=1)

        taken = store.decrement_seat(str(kata))
        refused = store.decrement_seat(str(kata))

        assert taken["modifiedCount"] == 1
        assert refused["matchedCount"] == 0
        assert store.db[CLASSES].find_one({"_id": kata})["availableSeats"] == 0

    def test_unknown_class_matches_nothing(self, store):
        assert store.decrement_seat(str(ObjectId()))["matchedCount"] == 0
