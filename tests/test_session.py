"""Tests for the ledger session and application wiring."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.config import get_settings
from finance_tracker.models import (
    AttachmentUpload,
    CategoryFilter,
    NotificationLevel,
    ViewMode,
    ViewState,
    YearMonth,
)
from finance_tracker.models.audit import AuditEventType
from finance_tracker.orchestrator import (
    LedgerSession,
    StaticIdentityProvider,
    create_app_components,
)
from finance_tracker.services.records import RecordStoreAdapter
from finance_tracker.services.storage import (
    InMemoryDocumentStore,
    Subscription,
    SubscriptionError,
)
from finance_tracker.validation import ValidationError


JANUARY = YearMonth(year=2024, month=1)


class BrokenStore(InMemoryDocumentStore):
    """Every write and every debt subscription fails."""

    async def add_document(self, collection_path, data):
        raise RuntimeError("offline")

    async def update_document(self, collection_path, doc_id, fields):
        raise RuntimeError("offline")

    def watch_collection(self, collection_path):
        if not collection_path.endswith("/debts"):
            return super().watch_collection(collection_path)

        async def start(subscription):
            subscription.fail(RuntimeError("permission denied"))

        return Subscription(collection_path, start)


@pytest.fixture
def session(adapter, scope) -> LedgerSession:
    return LedgerSession(adapter, scope)


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


class TestActions:
    """Tests for user actions."""

    @pytest.mark.asyncio
    async def test_add_debt_reaches_snapshot_via_refresh(self, session):
        """Test a write is only visible once read back from the store."""
        notification = await session.add_debt("Alex", "500", date(2024, 1, 5))

        assert notification.level == NotificationLevel.SUCCESS
        assert notification.record_id
        assert session.snapshot.debts == ()

        await session.refresh(timeout=1)
        assert [d.id for d in session.snapshot.debts] == [notification.record_id]

    @pytest.mark.asyncio
    async def test_dropped_receipt_is_a_warning(self, session):
        """Test a record saved without its unreadable receipt says so."""
        bad = AttachmentUpload(filename="receipt.png", data=b"not an image")

        notification = await session.add_debt("Rent", "500", None, bad)

        assert notification.level == NotificationLevel.WARNING
        assert notification.ok
        assert "without its receipt" in notification.message
        await session.refresh(timeout=1)
        assert session.snapshot.debts[0].id == notification.record_id
        assert session.snapshot.debts[0].image_path is None

    @pytest.mark.asyncio
    async def test_receipt_upload_is_a_success(self, session, receipt):
        """Test a stored receipt gives a plain success."""
        notification = await session.add_income("Salary", "1000", None, receipt)
        assert notification.level == NotificationLevel.SUCCESS

    @pytest.mark.asyncio
    async def test_invalid_entry_raises_and_stores_nothing(self, session, store, scope, audit_storage):
        """Test validation errors reach the form and nothing is written."""
        with pytest.raises(ValidationError):
            await session.add_income("Salary", "a lot")

        await session.refresh(timeout=1)
        assert session.snapshot.incomes == ()
        assert audit_storage.events[-1].event_type == AuditEventType.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_mark_paid_and_delete(self, session):
        """Test the paid toggle and delete flow through the store."""
        created = await session.add_debt("Sam", "300", date(2024, 2, 10))

        assert (await session.set_debt_paid(created.record_id, True)).ok
        await session.refresh(timeout=1)
        assert session.snapshot.debts[0].paid is True

        assert (await session.delete_debt(created.record_id)).ok
        await session.refresh(timeout=1)
        assert session.snapshot.debts == ()

    @pytest.mark.asyncio
    async def test_missing_record_is_an_error_notification(self, session):
        """Test not-found becomes a message, not an exception."""
        notification = await session.delete_income("gone")
        assert notification.level == NotificationLevel.ERROR
        assert notification.record_id == "gone"

    @pytest.mark.asyncio
    async def test_failed_write_is_an_error_notification(self, attachments, scope):
        """Test transport failures surface as error notifications."""
        session = LedgerSession(RecordStoreAdapter(BrokenStore(), attachments), scope)

        assert not (await session.add_debt("Alex", "5")).ok
        assert not (await session.set_debt_paid("d1", True)).ok

    @pytest.mark.asyncio
    async def test_update_goal(self, session):
        """Test goal edits validate and persist."""
        assert (await session.update_goal("7500")).ok
        await session.refresh(timeout=1)
        assert session.snapshot.goal.goal == Decimal("7500")

        with pytest.raises(ValidationError):
            await session.update_goal("-1")


class TestWatch:
    """Tests for live synchronisation."""

    @pytest.mark.asyncio
    async def test_watch_applies_pushes_and_releases(self, session, store):
        """Test pushes replace the snapshot and cancelling releases everything."""
        seen = []
        task = asyncio.create_task(session.watch(listener=seen.append))
        await settle()

        await session.add_income("Salary", "1000", date(2024, 1, 15))
        await settle()

        assert [i.name for i in session.snapshot.incomes] == ["Salary"]
        assert seen[-1] is session.snapshot
        assert store.active_subscriptions == 3

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert store.active_subscriptions == 0

    @pytest.mark.asyncio
    async def test_watch_failure_releases_other_streams(self, attachments, scope, audit_logger, audit_storage):
        """Test one failing stream ends the watch and frees the others."""
        store = BrokenStore()
        adapter = RecordStoreAdapter(store, attachments, audit_logger=audit_logger)
        session = LedgerSession(adapter, scope)

        with pytest.raises(SubscriptionError) as exc_info:
            await session.watch()

        assert "permission denied" in str(exc_info.value)
        assert store.active_subscriptions == 0
        event_types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.SUBSCRIPTION_FAILED in event_types


class TestViews:
    """Tests for page projections over the session snapshot."""

    @pytest.mark.asyncio
    async def test_dashboard_scenario(self, session):
        """Test the monthly dashboard after entering the reference data."""
        first = await session.add_debt("Alex", "500", date(2024, 1, 5))
        second = await session.add_debt("Sam", "300", date(2024, 2, 10))
        await session.set_debt_paid(second.record_id, True)
        await session.add_income("Salary", "1000", date(2024, 1, 15))
        await session.update_goal("2000")
        await session.refresh(timeout=1)

        view = ViewState(reference_month=JANUARY, view_mode=ViewMode.MONTHLY)
        dashboard = session.dashboard(view)

        assert dashboard.totals.total_income == Decimal("1000")
        assert dashboard.totals.outstanding_debt == Decimal("500")
        assert dashboard.totals.paid_debt == Decimal("0")
        assert dashboard.goal_progress == Decimal("50")
        assert {row.id for row in dashboard.rows} >= {first.record_id}

        all_time = session.dashboard(view.model_copy(update={"view_mode": ViewMode.ALL_TIME}))
        assert all_time.totals.paid_debt == Decimal("300")

        await session.delete_debt(second.record_id)
        await session.refresh(timeout=1)
        assert session.dashboard(all_time.view).totals.paid_debt == Decimal("0")

    @pytest.mark.asyncio
    async def test_tracker_pages(self, session):
        """Test debt and income tracker summaries."""
        await session.add_debt("Alex", "500", date(2024, 1, 5))
        await session.add_income("Salary", "1000", date(2024, 1, 15))
        await session.refresh(timeout=1)

        view = ViewState(
            reference_month=JANUARY,
            view_mode=ViewMode.ALL_TIME,
            category_filter=CategoryFilter.ALL,
        )
        assert session.debt_tracker(view).outstanding_total == Decimal("500")
        income = session.income_tracker(view)
        assert income.goal == Decimal("6000")
        assert income.monthly_total == Decimal("1000")
        assert 2024 in session.available_years()


class TestWiring:
    """Tests for identity and the component factory."""

    def test_identity_from_settings(self):
        """Test the scope defaults to configured ids."""
        app_settings = get_settings().app
        scope = StaticIdentityProvider().scope
        assert scope.app_id == app_settings.app_id
        assert scope.user_id == app_settings.app_user_id

    def test_identity_override(self):
        """Test explicit ids win over settings."""
        scope = StaticIdentityProvider(app_id="a", user_id="u").scope
        assert scope.root == "artifacts/a/users/u"

    @pytest.mark.asyncio
    async def test_in_memory_components(self):
        """Test the credential-free wiring works end to end."""
        adapter, identity, sheets_client = create_app_components(use_storage=False)
        session = LedgerSession(adapter, await identity.sign_in())

        assert sheets_client is None
        assert (await session.add_income("Gift", "25")).ok
        await session.refresh(timeout=1)
        assert len(session.snapshot.incomes) == 1
