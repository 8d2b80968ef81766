# shared fixtures for backend api tests
# provides a mock motor database, sample appointments/chats, and httpx test clients

import re
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from bson import ObjectId

from httpx import AsyncClient, ASGITransport

from therapist_dashboard.main import app
from therapist_dashboard.services.db import Database, get_db, PARENT_FIELD
from therapist_dashboard.services.auth_service import hash_password
from therapist_dashboard.dependencies import get_current_user


# test ids

THERAPIST_OID = ObjectId("65f000000000000000000001")
OTHER_THERAPIST_OID = ObjectId("65f000000000000000000002")
THERAPIST_ID = str(THERAPIST_OID)
OTHER_THERAPIST_ID = str(OTHER_THERAPIST_OID)

PATIENT_A = "patient_a"
PATIENT_B = "patient_b"
PATIENT_C = "patient_c"
PATIENT_D = "patient_d"

# frozen clock for aggregation tests, today is 2025-06-10
NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# document builders

def appointment(doc_id, patient_id, status, date="2025-06-20", time="10:00",
                created_at=None, therapist_id=THERAPIST_ID, patient_name=None):
    return {
        "_id": doc_id,
        "therapist_id": therapist_id,
        "patient_id": patient_id,
        "patient_name": patient_name or (patient_id or "Unknown").replace("_", " ").title(),
        "date": date,
        "time": time,
        "status": status,
        "created_at": created_at or utc(2025, 1, 1),
    }


def chat(chat_id, *participants):
    return {"_id": chat_id, "participants": list(participants)}


def message(msg_id, chat_id, sender_id, receiver_id, timestamp, text="hello",
            read=None, sender_name=None):
    doc = {
        "_id": msg_id,
        PARENT_FIELD: f"chats/{chat_id}",
        "sender_id": sender_id,
        "sender_name": sender_name or sender_id.replace("_", " ").title(),
        "receiver_id": receiver_id,
        "text": text,
        "timestamp": timestamp,
    }
    if read is not None:
        doc["read"] = read
    return doc


# test user documents (as they'd appear from mongodb)

THERAPIST_DOC = {
    "_id": THERAPIST_OID,
    "email": "dr.rivera@example.com",
    "hashed_password": hash_password("therapy123"),
    "display_name": "Dr. Elena Rivera",
    "role": "therapist",
    "bio": "CBT-focused clinician",
    "specialties": ["Anxiety", "Stress"],
    "license": "LPC-2024-0042",
    "created_at": "2024-06-15T00:00:00+00:00",
}

PATIENT_DOC = {
    "_id": ObjectId("65f000000000000000000010"),
    "email": "alex@example.com",
    "hashed_password": hash_password("patient123"),
    "display_name": "Alex Morgan",
    "role": "patient",
    "created_at": "2025-01-10T00:00:00+00:00",
}


# sample data

SAMPLE_APPOINTMENTS = [
    # pending requests, created 1-4 jan
    appointment("req_1", PATIENT_A, "pending", created_at=utc(2025, 1, 1)),
    appointment("req_2", PATIENT_B, "pending", created_at=utc(2025, 1, 2)),
    appointment("req_3", PATIENT_C, "pending", created_at=utc(2025, 1, 3)),
    appointment("req_4", PATIENT_A, "pending", created_at=utc(2025, 1, 4)),
    # confirmed sessions
    appointment("sess_today_late", PATIENT_A, "scheduled", date="2025-06-10", time="15:00"),
    appointment("sess_today_early", PATIENT_B, "accepted", date="2025-06-10", time="09:30"),
    appointment("sess_later", PATIENT_C, "scheduled", date="2025-06-12", time="11:00"),
    appointment("sess_past", PATIENT_A, "scheduled", date="2025-06-01", time="10:00"),
    appointment("sess_declined", PATIENT_D, "other", date="2025-06-15", time="10:00"),
    appointment("sess_no_patient", None, "other", date="2025-06-16"),
    # another therapist's data never leaks in
    appointment("other_req", "patient_z", "pending", therapist_id=OTHER_THERAPIST_ID,
                created_at=utc(2025, 2, 1)),
    appointment("other_sess", "patient_z", "scheduled", date="2025-06-11",
                therapist_id=OTHER_THERAPIST_ID),
]

SAMPLE_CHATS = [
    chat(f"{THERAPIST_ID}_{PATIENT_A}", THERAPIST_ID, PATIENT_A),
    chat(f"{THERAPIST_ID}_{PATIENT_B}", THERAPIST_ID, PATIENT_B),
    chat(f"{OTHER_THERAPIST_ID}_{PATIENT_C}", OTHER_THERAPIST_ID, PATIENT_C),
]

SAMPLE_MESSAGES = [
    message("m_a1", f"{THERAPIST_ID}_{PATIENT_A}", PATIENT_A, THERAPIST_ID, utc(2025, 6, 9, 10, 0)),
    message("m_a2", f"{THERAPIST_ID}_{PATIENT_A}", THERAPIST_ID, PATIENT_A, utc(2025, 6, 9, 10, 5)),
    message("m_b1", f"{THERAPIST_ID}_{PATIENT_B}", PATIENT_B, THERAPIST_ID, utc(2025, 6, 9, 11, 0),
            read=True),
    # addressed to the therapist but stored in a chat they are not part of
    message("m_c1", f"{OTHER_THERAPIST_ID}_{PATIENT_C}", PATIENT_C, THERAPIST_ID,
            utc(2025, 6, 9, 12, 0)),
]


# async cursor mock

def _sort_value(value):
    # mongo orders missing/null before everything else
    return (0, "") if value is None else (1, value)


class AsyncCursorMock:
    """mock for motor's async cursor: supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = list(data or [])
        self._index = 0

    def sort(self, key_or_list, direction=None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        # stable sorts applied from the last key to the first
        for field, order in reversed(keys):
            self._data.sort(key=lambda d: _sort_value(d.get(field)), reverse=order == -1)
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        if n:
            self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []
        self.find_calls = []

    def find(self, query=None, projection=None):
        self.find_calls.append(query)
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(results)

    async def find_one(self, query=None, projection=None):
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return dict(doc)
        return None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            if key == "$or":
                if not any(self._matches(doc, cond) for cond in value):
                    return False
                continue
            doc_val = doc.get(key)
            if isinstance(value, dict):
                if not all(self._check(op, doc_val, arg) for op, arg in value.items()):
                    return False
            elif doc_val != value:
                return False
        return True

    @staticmethod
    def _check(op, doc_val, arg):
        if op == "$eq":
            return doc_val == arg
        if op == "$ne":
            return doc_val != arg
        if op == "$in":
            return doc_val in arg
        if op == "$all":
            return isinstance(doc_val, list) and all(a in doc_val for a in arg)
        if op == "$regex":
            return doc_val is not None and re.search(arg, str(doc_val)) is not None
        if doc_val is None:
            return False
        if op == "$gte":
            return doc_val >= arg
        if op == "$gt":
            return doc_val > arg
        if op == "$lte":
            return doc_val <= arg
        if op == "$lt":
            return doc_val < arg
        raise AssertionError(f"unsupported operator in mock: {op}")


class MockDatabase(Database):
    """mock database: real query translation over in-memory collections"""

    def __init__(self, users=None, appointments=None, chats=None, messages=None):
        super().__init__()
        self._collections = {
            "users": MockCollection(users if users is not None else [
                dict(THERAPIST_DOC), dict(PATIENT_DOC),
            ]),
            "appointments": MockCollection(
                appointments if appointments is not None else [dict(a) for a in SAMPLE_APPOINTMENTS]
            ),
            "chats": MockCollection(
                chats if chats is not None else [dict(c) for c in SAMPLE_CHATS]
            ),
            "messages": MockCollection(
                messages if messages is not None else [dict(m) for m in SAMPLE_MESSAGES]
            ),
        }
        self.queries = []

    def collection(self, name):
        return self._collections.setdefault(name, MockCollection([]))

    async def execute(self, query):
        self.queries.append(query)
        return await super().execute(query)

    async def connect(self):
        pass

    async def close(self):
        pass


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


def _user_dict(doc):
    """return a user dict as get_current_user would return"""
    user = dict(doc)
    user["id"] = str(user.pop("_id"))
    return user


@pytest_asyncio.fixture
async def client(mock_db):
    """httpx async test client with the database mocked, no auth override"""

    async def override_get_db():
        return mock_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def therapist_client(mock_db):
    """client authenticated as a therapist"""

    async def override_get_db():
        return mock_db

    async def override_get_current_user():
        return _user_dict(THERAPIST_DOC)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def patient_client(mock_db):
    """client authenticated as a patient"""

    async def override_get_db():
        return mock_db

    async def override_get_current_user():
        return _user_dict(PATIENT_DOC)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
