"""
Shared fixtures.

No network: in-memory document, blob and audit stores stand in for
Google Sheets and Cloudinary.
"""

from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO

import pytest
from PIL import Image

from finance_tracker.audit import AuditLogger
from finance_tracker.models import (
    AttachmentUpload,
    DebtRecord,
    GoalSetting,
    IncomeRecord,
    UserScope,
)
from finance_tracker.services.attachments import AttachmentManager, InMemoryBlobStore
from finance_tracker.services.records import RecordStoreAdapter
from finance_tracker.services.storage import InMemoryAuditStorage, InMemoryDocumentStore


def make_image(fmt: str = "PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color=(45, 212, 191)).save(buffer, format=fmt)
    return buffer.getvalue()


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture
def scope() -> UserScope:
    return UserScope(app_id="test-app", user_id="user-1")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def attachments(blob_store, audit_logger) -> AttachmentManager:
    return AttachmentManager(blob_store, audit_logger=audit_logger)


@pytest.fixture
def adapter(store, attachments, audit_logger) -> RecordStoreAdapter:
    return RecordStoreAdapter(store, attachments, audit_logger=audit_logger)


@pytest.fixture
def image_bytes():
    """Factory for tiny valid images in any Pillow format."""
    return make_image


@pytest.fixture
def receipt() -> AttachmentUpload:
    return AttachmentUpload(filename="receipt.png", data=make_image(), content_type="image/png")


@pytest.fixture
def scenario_records():
    """Two debts across January/February 2024 and one January income."""
    debts = (
        DebtRecord(id="d1", name="Alex", amount=Decimal("500"), paid=False, date=utc(2024, 1, 5)),
        DebtRecord(id="d2", name="Sam", amount=Decimal("300"), paid=True, date=utc(2024, 2, 10)),
    )
    incomes = (
        IncomeRecord(id="i1", name="Salary", amount=Decimal("1000"), date=utc(2024, 1, 15)),
    )
    return debts, incomes, GoalSetting(goal=Decimal("2000"))
