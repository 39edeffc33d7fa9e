"""
Main Orchestrator for the Finance Tracker

This module ties together all the components and defines the
end-to-end flows for one signed-in user:
1. Live sync (three subscriptions → committed snapshot)
2. Entry (form input → validate → attachment → store)
3. Maintenance (mark paid, delete, edit goal)
4. Views (snapshot + view state → dashboard / tracker projections)

DESIGN DECISION: The session never patches its snapshot after a write.
A write only talks to the store; the change comes back through the
subscriptions (or the next refresh) like any other change. The UI therefore
always shows committed state.

Action methods return a Notification instead of raising storage errors, so
a failed write is a message to the user, not a crash. Validation errors are
raised unchanged so forms can keep what the user typed.
"""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.ledger import (
    available_years,
    project_dashboard,
    summarize_debts,
    summarize_incomes,
)
from finance_tracker.models.ledger import (
    AttachmentUpload,
    DashboardProjection,
    DebtRecord,
    DebtTrackerSummary,
    GoalSetting,
    IncomeRecord,
    IncomeTrackerSummary,
    LedgerSnapshot,
    Notification,
    NotificationLevel,
    RecordKind,
    UserScope,
    ViewState,
)
from finance_tracker.services.attachments import (
    AttachmentManager,
    BlobStoreInterface,
    CloudinaryBlobStore,
    InMemoryBlobStore,
)
from finance_tracker.services.records import RecordStoreAdapter
from finance_tracker.services.storage import (
    AuditStorageInterface,
    DocumentStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    PersistenceError,
    Subscription,
    SubscriptionError,
)
from finance_tracker.validation import EntryValidator, ValidationError


logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[LedgerSnapshot], Union[Awaitable[None], None]]


class StaticIdentityProvider:
    """
    Resolves the signed-in user to a configured scope.

    Stands in for an auth provider: the app id and user id come from
    settings (APP_ID, APP_USER_ID) unless given explicitly.
    """

    def __init__(self, app_id: Optional[str] = None, user_id: Optional[str] = None):
        app_settings = get_settings().app
        self._scope = UserScope(
            app_id=app_id or app_settings.app_id,
            user_id=user_id or app_settings.app_user_id,
        )

    @property
    def scope(self) -> UserScope:
        return self._scope

    async def sign_in(self) -> UserScope:
        return self._scope


class LedgerSession:
    """
    One user's live ledger.

    Holds the latest committed snapshot, applies subscription pushes, runs
    user actions against the adapter and produces the page projections.
    """

    def __init__(
        self,
        adapter: RecordStoreAdapter,
        scope: UserScope,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntryValidator] = None,
    ):
        self._adapter = adapter
        self._scope = scope
        self._audit_logger = audit_logger or adapter.audit_logger
        self._validator = validator or EntryValidator()
        self._snapshot = LedgerSnapshot(goal=adapter.default_goal)

    @property
    def scope(self) -> UserScope:
        return self._scope

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    # =========================================================================
    # SNAPSHOT UPDATES (subscription pushes only)
    # =========================================================================

    def apply_debts(self, debts: tuple[DebtRecord, ...]) -> LedgerSnapshot:
        self._snapshot = self._snapshot.model_copy(update={"debts": tuple(debts)})
        return self._snapshot

    def apply_incomes(self, incomes: tuple[IncomeRecord, ...]) -> LedgerSnapshot:
        self._snapshot = self._snapshot.model_copy(update={"incomes": tuple(incomes)})
        return self._snapshot

    def apply_goal(self, goal: GoalSetting) -> LedgerSnapshot:
        self._snapshot = self._snapshot.model_copy(update={"goal": goal})
        return self._snapshot

    async def refresh(self, timeout: Optional[float] = None) -> LedgerSnapshot:
        """Replace the snapshot with one fresh read of all three streams."""
        self._snapshot = await self._adapter.load_snapshot(self._scope, timeout)
        return self._snapshot

    async def _consume(
        self,
        subscription: Subscription,
        apply: Callable[[Any], LedgerSnapshot],
        listener: Optional[SnapshotListener],
    ) -> None:
        try:
            async for pushed in subscription:
                snapshot = apply(pushed)
                if listener is not None:
                    result = listener(snapshot)
                    if asyncio.iscoroutine(result):
                        await result
        except SubscriptionError as e:
            await self._audit_logger.log_subscription_failed(
                path=e.source,
                error_message=str(e),
            )
            raise

    async def watch(self, listener: Optional[SnapshotListener] = None) -> None:
        """
        Keep the snapshot in sync until cancelled or a stream fails.

        All three subscriptions are released on exit, whichever way the
        method ends.

        Raises:
            SubscriptionError: When any stream fails; the others are released
        """
        async with AsyncExitStack() as stack:
            debts = await stack.enter_async_context(
                self._adapter.subscribe_debts(self._scope)
            )
            incomes = await stack.enter_async_context(
                self._adapter.subscribe_incomes(self._scope)
            )
            goal = await stack.enter_async_context(
                self._adapter.subscribe_goal(self._scope)
            )
            consumers = [
                asyncio.ensure_future(self._consume(debts, self.apply_debts, listener)),
                asyncio.ensure_future(self._consume(incomes, self.apply_incomes, listener)),
                asyncio.ensure_future(self._consume(goal, self.apply_goal, listener)),
            ]
            try:
                await asyncio.gather(*consumers)
            finally:
                for consumer in consumers:
                    consumer.cancel()

    # =========================================================================
    # ACTIONS
    # =========================================================================

    async def _validate_entry(
        self,
        name: Optional[str],
        amount: Any,
        entry_date: Any,
        correlation_id: UUID,
    ):
        try:
            return self._validator.validate_entry(name, amount, entry_date)
        except ValidationError as e:
            await self._audit_logger.log_validation_failed(
                issues=[issue.model_dump() for issue in e.issues],
                correlation_id=correlation_id,
            )
            raise

    async def _add(
        self,
        kind: RecordKind,
        name: Optional[str],
        amount: Any,
        entry_date: Any,
        attachment: Optional[AttachmentUpload],
    ) -> Notification:
        correlation_id = create_correlation_id()
        entry = await self._validate_entry(name, amount, entry_date, correlation_id)

        try:
            created = await self._adapter.create_record(
                self._scope,
                kind,
                entry,
                attachment=attachment,
                correlation_id=correlation_id,
            )
        except PersistenceError as e:
            return Notification(level=NotificationLevel.ERROR, message=str(e))

        if created.attachment_error:
            return Notification(
                level=NotificationLevel.WARNING,
                message=f"{kind.label} added without its receipt: {created.attachment_error}",
                record_id=created.id,
            )
        return Notification(
            level=NotificationLevel.SUCCESS,
            message=f"{kind.label} added: {entry.name}",
            record_id=created.id,
        )

    async def add_debt(
        self,
        name: Optional[str],
        amount: Any,
        entry_date: Any = None,
        attachment: Optional[AttachmentUpload] = None,
    ) -> Notification:
        """
        Add an unpaid debt.

        Raises:
            ValidationError: If the form input is invalid; nothing is stored
        """
        return await self._add(RecordKind.DEBTS, name, amount, entry_date, attachment)

    async def add_income(
        self,
        name: Optional[str],
        amount: Any,
        entry_date: Any = None,
        attachment: Optional[AttachmentUpload] = None,
    ) -> Notification:
        """
        Add an income.

        Raises:
            ValidationError: If the form input is invalid; nothing is stored
        """
        return await self._add(RecordKind.INCOMES, name, amount, entry_date, attachment)

    async def set_debt_paid(self, record_id: str, paid: bool) -> Notification:
        try:
            await self._adapter.update_debt_status(
                self._scope, record_id, paid, create_correlation_id(),
            )
        except (NotFoundError, PersistenceError) as e:
            return Notification(level=NotificationLevel.ERROR, message=str(e), record_id=record_id)

        status = "paid" if paid else "unpaid"
        return Notification(
            level=NotificationLevel.SUCCESS,
            message=f"Debt marked as {status}",
            record_id=record_id,
        )

    async def _delete(self, kind: RecordKind, record_id: str) -> Notification:
        try:
            await self._adapter.delete_record(
                self._scope, kind, record_id, create_correlation_id(),
            )
        except (NotFoundError, PersistenceError) as e:
            return Notification(level=NotificationLevel.ERROR, message=str(e), record_id=record_id)

        return Notification(
            level=NotificationLevel.SUCCESS,
            message=f"{kind.label} deleted",
            record_id=record_id,
        )

    async def delete_debt(self, record_id: str) -> Notification:
        return await self._delete(RecordKind.DEBTS, record_id)

    async def delete_income(self, record_id: str) -> Notification:
        return await self._delete(RecordKind.INCOMES, record_id)

    async def update_goal(self, value: Any) -> Notification:
        """
        Overwrite the monthly income goal.

        Raises:
            ValidationError: If the value is not a number greater than zero
        """
        try:
            goal = await self._adapter.set_goal(self._scope, value, create_correlation_id())
        except PersistenceError as e:
            return Notification(level=NotificationLevel.ERROR, message=str(e))

        return Notification(
            level=NotificationLevel.SUCCESS,
            message=f"Monthly income goal set to {goal.goal:,.2f}",
        )

    # =========================================================================
    # VIEWS
    # =========================================================================

    def dashboard(self, view: ViewState) -> DashboardProjection:
        return project_dashboard(self._snapshot, view)

    def debt_tracker(self, view: ViewState) -> DebtTrackerSummary:
        return summarize_debts(self._snapshot.debts, view.view_mode, view.reference_month)

    def income_tracker(self, view: ViewState) -> IncomeTrackerSummary:
        return summarize_incomes(
            self._snapshot.incomes,
            self._snapshot.goal,
            view.view_mode,
            view.reference_month,
        )

    def available_years(self) -> list[int]:
        return available_years(self._snapshot.debts + self._snapshot.incomes)


def create_app_components(
    use_storage: bool = True,
) -> tuple[RecordStoreAdapter, StaticIdentityProvider, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets and Cloudinary.
                    Set to False for tests and credential-free local runs;
                    everything then lives in memory for the process lifetime.

    Returns:
        (record_store_adapter, identity_provider, sheets_client)
    """
    sheets_client = None
    document_store: Optional[DocumentStoreInterface] = None
    audit_storage: Optional[AuditStorageInterface] = None
    blob_store: Optional[BlobStoreInterface] = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            document_store = GoogleSheetsDocumentStore(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

        try:
            blob_store = CloudinaryBlobStore()
        except Exception as e:
            logger.warning("attachments_not_configured", error=str(e))

    audit_logger = AuditLogger(audit_storage)
    attachments = AttachmentManager(
        blob_store or InMemoryBlobStore(),
        audit_logger=audit_logger,
    )
    adapter = RecordStoreAdapter(
        document_store or InMemoryDocumentStore(),
        attachments,
        audit_logger=audit_logger,
    )

    return adapter, StaticIdentityProvider(), sheets_client
