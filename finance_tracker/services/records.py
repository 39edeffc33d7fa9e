"""
Record Store Adapter

Translates ledger operations into document store calls:
- two collections per user, "debts" and "incomes"
- one singleton settings document, "settings/incomeGoal"

GUARANTEES:
- Subscriptions deliver whole, decoded snapshots; malformed documents are
  skipped (and logged) instead of breaking the stream
- A missing goal document means the configured default goal
- Writes either succeed or raise; nothing is patched into local state here
- Attachment deletion failures during record deletion are swallowed
"""

import asyncio
from datetime import datetime
from functools import partial
from typing import Any, Callable, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.models.ledger import (
    GOAL_DOCUMENT_ID,
    AttachmentUpload,
    CreatedRecord,
    DebtRecord,
    GoalSetting,
    IncomeRecord,
    LedgerRecord,
    LedgerSnapshot,
    NewEntry,
    RecordKind,
    UserScope,
    utc_now,
)
from finance_tracker.services.attachments import AttachmentManager, UploadError
from finance_tracker.services.storage import (
    CollectionSnapshot,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    PersistenceError,
    Subscription,
)
from finance_tracker.validation import EntryValidator, ValidationError


logger = structlog.get_logger(__name__)


def decode_records(
    record_type: type[LedgerRecord],
    documents: CollectionSnapshot,
) -> tuple[LedgerRecord, ...]:
    """Decode a collection snapshot, skipping documents that can't be read."""
    records = []
    for doc_id, data in documents.items():
        try:
            records.append(record_type.from_document(doc_id, data))
        except (PydanticValidationError, ValueError, TypeError) as e:
            logger.warning(
                "skipping_malformed_record",
                kind=record_type.kind.value,
                doc_id=doc_id,
                error=str(e),
            )
    return tuple(records)


def decode_goal(default: GoalSetting, document: Optional[Document]) -> GoalSetting:
    """Decode the goal document; absent or unreadable means the default."""
    if not document or "goal" not in document:
        return default
    try:
        return GoalSetting(goal=document["goal"])
    except (PydanticValidationError, ValueError) as e:
        logger.warning("invalid_goal_document", error=str(e))
        return default


class RecordStoreAdapter:
    """
    Create/update/delete/subscribe operations for one user's ledger.

    Every method takes the UserScope explicitly; the adapter keeps no
    per-user state.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        attachments: AttachmentManager,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntryValidator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._attachments = attachments
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or EntryValidator()
        self._clock = clock
        self._default_goal = GoalSetting(goal=get_settings().app.default_income_goal)

    @property
    def default_goal(self) -> GoalSetting:
        return self._default_goal

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe_debts(self, scope: UserScope) -> Subscription[tuple[DebtRecord, ...]]:
        """Live stream of the user's complete debt set."""
        return self._store.watch_collection(
            scope.collection_path(RecordKind.DEBTS)
        ).map(partial(decode_records, DebtRecord))

    def subscribe_incomes(self, scope: UserScope) -> Subscription[tuple[IncomeRecord, ...]]:
        """Live stream of the user's complete income set."""
        return self._store.watch_collection(
            scope.collection_path(RecordKind.INCOMES)
        ).map(partial(decode_records, IncomeRecord))

    def subscribe_goal(self, scope: UserScope) -> Subscription[GoalSetting]:
        """Live stream of the monthly income goal (default when unset)."""
        return self._store.watch_document(
            scope.settings_path,
            GOAL_DOCUMENT_ID,
        ).map(partial(decode_goal, self._default_goal))

    async def load_snapshot(
        self,
        scope: UserScope,
        timeout: Optional[float] = None,
    ) -> LedgerSnapshot:
        """
        Take the first push of all three streams and release them.

        For request/response callers (the Streamlit pages) that re-read
        state on every interaction instead of holding subscriptions open.
        """
        debts, incomes, goal = await asyncio.gather(
            self.subscribe_debts(scope).first(timeout),
            self.subscribe_incomes(scope).first(timeout),
            self.subscribe_goal(scope).first(timeout),
        )
        return LedgerSnapshot(debts=debts, incomes=incomes, goal=goal)

    # =========================================================================
    # WRITES
    # =========================================================================

    async def _persistence_error(
        self,
        operation: str,
        error: Exception,
        kind: Optional[RecordKind] = None,
        record_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PersistenceError:
        await self._audit_logger.log_persistence_failed(
            operation=operation,
            error_message=str(error),
            kind=kind.value if kind else None,
            record_id=record_id,
            correlation_id=correlation_id,
        )
        return PersistenceError(f"Failed to {operation}: {error}")

    def _build_document(
        self,
        kind: RecordKind,
        entry: NewEntry,
        image_url: Optional[str],
        image_path: Optional[str],
    ) -> dict[str, Any]:
        document: dict[str, Any] = {
            "name": entry.name,
            "amount": str(entry.amount),
            "date": (entry.date or self._clock()).isoformat(),
        }
        if kind is RecordKind.DEBTS:
            document["paid"] = False
        if image_path:
            document["imageUrl"] = image_url
            document["imagePath"] = image_path
        return document

    async def create_record(
        self,
        scope: UserScope,
        kind: RecordKind,
        entry: NewEntry,
        attachment: Optional[AttachmentUpload] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CreatedRecord:
        """
        Store a new debt or income.

        The attachment, if any, is uploaded first. If that upload fails the
        record is stored without attachment fields.

        Returns:
            The store-assigned id, the stored attachment, and the upload
            error when a requested attachment was dropped

        Raises:
            PersistenceError: If the document write fails
        """
        image = None
        attachment_error = None
        if attachment is not None:
            try:
                image = await self._attachments.upload(scope, attachment, correlation_id)
            except UploadError as e:
                attachment_error = str(e)
                await self._audit_logger.log_attachment_upload_failed(
                    filename=attachment.filename,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )

        document = self._build_document(
            kind,
            entry,
            image.url if image else None,
            image.path if image else None,
        )

        try:
            record_id = await self._store.add_document(scope.collection_path(kind), document)
        except Exception as e:
            if image:
                await self._attachments.remove(image.path, correlation_id)
            raise await self._persistence_error(
                f"create {kind.label.lower()}", e, kind, correlation_id=correlation_id,
            ) from e

        await self._audit_logger.log_record_created(
            kind=kind.value,
            record_id=record_id,
            name=entry.name,
            amount=str(entry.amount),
            has_attachment=image is not None,
            correlation_id=correlation_id,
        )
        return CreatedRecord(id=record_id, attachment=image, attachment_error=attachment_error)

    async def update_debt_status(
        self,
        scope: UserScope,
        record_id: str,
        paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Set the paid flag of one debt and nothing else.

        Raises:
            NotFoundError: If the debt no longer exists
            PersistenceError: On transport failure
        """
        try:
            await self._store.update_document(
                scope.collection_path(RecordKind.DEBTS),
                record_id,
                {"paid": bool(paid)},
            )
        except NotFoundError:
            raise NotFoundError(f"Debt not found: {record_id}")
        except Exception as e:
            raise await self._persistence_error(
                "update debt status", e, RecordKind.DEBTS, record_id, correlation_id,
            ) from e

        await self._audit_logger.log_debt_status_updated(
            record_id=record_id,
            paid=bool(paid),
            correlation_id=correlation_id,
        )

    async def delete_record(
        self,
        scope: UserScope,
        kind: RecordKind,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a record and, best-effort, its attachment.

        Order: read the record to find its attachment path, ask the
        attachment manager to remove it, then delete the document.

        Raises:
            NotFoundError: If the record no longer exists
            PersistenceError: If the point read or the delete fails
        """
        collection = scope.collection_path(kind)

        try:
            document = await self._store.get_document(collection, record_id)
        except Exception as e:
            raise await self._persistence_error(
                f"read {kind.label.lower()}", e, kind, record_id, correlation_id,
            ) from e

        if document is None:
            raise NotFoundError(f"{kind.label} not found: {record_id}")

        image_path = document.get("imagePath")
        if image_path:
            await self._attachments.remove(image_path, correlation_id)

        try:
            await self._store.delete_document(collection, record_id)
        except Exception as e:
            raise await self._persistence_error(
                f"delete {kind.label.lower()}", e, kind, record_id, correlation_id,
            ) from e

        await self._audit_logger.log_record_deleted(
            kind=kind.value,
            record_id=record_id,
            correlation_id=correlation_id,
        )

    async def set_goal(
        self,
        scope: UserScope,
        value: Any,
        correlation_id: Optional[UUID] = None,
    ) -> GoalSetting:
        """
        Overwrite the monthly income goal.

        Raises:
            ValidationError: If the value is not a number greater than zero;
                the stored goal is left untouched
            PersistenceError: If the write fails
        """
        try:
            goal = GoalSetting(goal=self._validator.validate_goal(value))
        except ValidationError as e:
            await self._audit_logger.log_validation_failed(
                issues=[issue.model_dump() for issue in e.issues],
                correlation_id=correlation_id,
            )
            raise

        try:
            await self._store.set_document(
                scope.settings_path,
                GOAL_DOCUMENT_ID,
                goal.to_document(),
            )
        except Exception as e:
            raise await self._persistence_error(
                "update income goal", e, correlation_id=correlation_id,
            ) from e

        await self._audit_logger.log_goal_updated(
            goal=str(goal.goal),
            correlation_id=correlation_id,
        )
        return goal
