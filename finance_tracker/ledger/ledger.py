"""
Ledger

The only component allowed to change account balances.

DESIGN DECISION: Every command follows the same shape:
1. Field validation (no locks, reports every issue at once)
2. Take the entity locks
3. Re-read current state and check references
4. Write, rolling back earlier writes if a later one fails
5. Audit

Lock order is always: account registry, then account keys. Posting never
takes the registry lock, so structural changes (create, archive, delete)
serialize against each other without slowing postings down.

Stored balances (asset, liability) change only here, through
`StoredBalanceAccount.with_balance_delta`. Derived balances (income,
expense) are recomputed from transactions on every read.
"""

from datetime import date, datetime
from typing import Any, Iterable, Optional, Union
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from finance_tracker.audit import AuditLogger
from finance_tracker.exceptions import InvalidStateError, NotFoundError, ValidationError
from finance_tracker.ledger.locks import EntityLocks
from finance_tracker.models.account import (
    AccountStatus,
    AccountType,
    AccountWithBalance,
    DerivedBalanceAccount,
    LedgerAccount,
    StoredBalanceAccount,
    build_account,
)
from finance_tracker.models.audit import AuditEventBuilder, AuditEventType
from finance_tracker.models.base import utc_now
from finance_tracker.models.transaction import (
    ClassifiedTransaction,
    Transaction,
    TransactionFilter,
)
from finance_tracker.services.storage import LedgerStorageInterface
from finance_tracker.validation import LedgerValidator

ACCOUNT_LOCK = "account"
REGISTRY_LOCK = "registry"
REGISTRY_KEY = "accounts"

# Distinguishes "leave the parent alone" from "clear the parent"
_UNSET: Any = object()


class Ledger:
    """
    Accounts and transactions with balance integrity.

    Usage:
        ledger = Ledger(InMemoryLedgerStorage())
        checking = ledger.create_account("Checking", "asset", 10_000)
        groceries = ledger.create_account("Groceries", "expense")
        ledger.post_transaction(checking.id, groceries.id, 2_500, "Weekly shop", date.today())
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        locks: Optional[EntityLocks] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()
        self._locks = locks or EntityLocks()

    @property
    def storage(self) -> LedgerStorageInterface:
        return self._storage

    @property
    def locks(self) -> EntityLocks:
        return self._locks

    # =========================================================================
    # ACCOUNT COMMANDS
    # =========================================================================

    def create_account(
        self,
        name: str,
        account_type: Union[AccountType, str],
        initial_balance: int = 0,
        parent_account_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerAccount:
        """
        Create an account.

        Raises:
            ValidationError: Bad name, type or balance, duplicate name within
                the type, unknown parent or parent of another type
            InvalidStateError: Parent is archived
        """
        self._validator.ensure_valid(
            self._validator.validate_new_account(name, account_type, initial_balance)
        )
        account_type = AccountType(account_type)
        name = name.strip()

        with self._locks.hold(REGISTRY_LOCK, REGISTRY_KEY):
            self._ensure_unique_name(name, account_type)
            if parent_account_id is not None:
                parent = self._require_parent(parent_account_id, account_type)
                if not parent.is_active:
                    raise InvalidStateError(
                        "PARENT_ARCHIVED",
                        f"Parent account '{parent.name}' is archived",
                    )

            try:
                account = build_account(
                    name=name,
                    type=account_type,
                    balance=initial_balance,
                    parent_account_id=parent_account_id,
                )
            except PydanticValidationError as e:
                raise self._validator.from_model_error(e) from e

            self._storage.save_account(account)

        if self._audit_logger:
            self._audit_logger.log_account_created(
                account_id=account.id,
                name=account.name,
                account_type=account.type.value,
                initial_balance=initial_balance,
                correlation_id=correlation_id,
            )
        return account

    def update_account(
        self,
        account_id: UUID,
        name: Optional[str] = None,
        parent_account_id: Optional[UUID] = _UNSET,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerAccount:
        """
        Rename or re-parent an account.

        Pass `parent_account_id=None` to detach the account from its parent.
        Type and balance cannot be changed here.
        """
        if name is not None:
            self._validator.ensure_valid(self._validator.validate_name(name))

        with self._locks.hold(REGISTRY_LOCK, REGISTRY_KEY), self._locks.hold(ACCOUNT_LOCK, account_id):
            account = self._require_account(account_id)
            changes: dict[str, Any] = {}

            if name is not None and name.strip() != account.name:
                self._ensure_unique_name(name.strip(), account.type, exclude_id=account.id)
                changes["name"] = name.strip()

            if parent_account_id is not _UNSET and parent_account_id != account.parent_account_id:
                if parent_account_id is not None:
                    self._require_parent(parent_account_id, account.type)
                    self._ensure_no_cycle(account.id, parent_account_id)
                changes["parent_account_id"] = parent_account_id

            if not changes:
                return account

            updated = account.model_copy(update={**changes, "updated_at": utc_now()})
            self._storage.save_account(updated)

        self._log_account_change(
            AuditEventType.ACCOUNT_UPDATED,
            updated,
            {key: str(value) if value is not None else None for key, value in changes.items()},
            correlation_id,
        )
        return updated

    def archive_account(
        self,
        account_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerAccount:
        """
        Archive an account. Archived accounts reject new transactions.

        Raises:
            InvalidStateError: Non-zero stored balance, or active children
        """
        with self._locks.hold(REGISTRY_LOCK, REGISTRY_KEY), self._locks.hold(ACCOUNT_LOCK, account_id):
            account = self._require_account(account_id)
            if not account.is_active:
                return account

            if isinstance(account, StoredBalanceAccount) and account.balance != 0:
                raise InvalidStateError(
                    "NON_ZERO_BALANCE",
                    f"Account '{account.name}' has a balance of {account.balance} cents; "
                    "transfer it out before archiving",
                )

            active_children = [
                child for child in self._children_of(account.id) if child.is_active
            ]
            if active_children:
                raise InvalidStateError(
                    "HAS_ACTIVE_CHILDREN",
                    f"Account '{account.name}' has {len(active_children)} active sub-account(s)",
                )

            archived = account.model_copy(update={
                "status": AccountStatus.ARCHIVED,
                "updated_at": utc_now(),
            })
            self._storage.save_account(archived)

        self._log_account_change(AuditEventType.ACCOUNT_ARCHIVED, archived, None, correlation_id)
        return archived

    def restore_account(
        self,
        account_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerAccount:
        """Make an archived account active again."""
        with self._locks.hold(REGISTRY_LOCK, REGISTRY_KEY), self._locks.hold(ACCOUNT_LOCK, account_id):
            account = self._require_account(account_id)
            if account.is_active:
                return account

            restored = account.model_copy(update={
                "status": AccountStatus.ACTIVE,
                "updated_at": utc_now(),
            })
            self._storage.save_account(restored)

        self._log_account_change(AuditEventType.ACCOUNT_RESTORED, restored, None, correlation_id)
        return restored

    def delete_account(
        self,
        account_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Permanently remove an archived account nothing refers to.

        Raises:
            InvalidStateError: Account is active, or still referenced by
                transactions, recurring rules or sub-accounts
        """
        with self._locks.hold(REGISTRY_LOCK, REGISTRY_KEY), self._locks.hold(ACCOUNT_LOCK, account_id):
            account = self._require_account(account_id)
            if account.is_active:
                raise InvalidStateError(
                    "ACCOUNT_ACTIVE",
                    f"Account '{account.name}' must be archived before it can be deleted",
                )
            if self._storage.list_transactions(account_id=account.id):
                raise InvalidStateError(
                    "HAS_TRANSACTIONS",
                    f"Account '{account.name}' has transactions",
                )
            if any(
                account.id in (rule.from_account_id, rule.to_account_id)
                for rule in self._storage.list_rules()
            ):
                raise InvalidStateError(
                    "HAS_RECURRING_RULES",
                    f"Account '{account.name}' is used by a recurring rule",
                )
            if self._children_of(account.id):
                raise InvalidStateError(
                    "HAS_CHILD_ACCOUNTS",
                    f"Account '{account.name}' has sub-accounts",
                )

            self._storage.delete_account(account.id)

        self._log_account_change(AuditEventType.ACCOUNT_DELETED, account, None, correlation_id)

    # =========================================================================
    # TRANSACTION COMMANDS
    # =========================================================================

    def post_transaction(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: int,
        description: str,
        date: Union[date, datetime],
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        recurring_rule_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ClassifiedTransaction:
        """
        Record money moving from one account to another.

        Both stored balances change together or not at all.

        Raises:
            ValidationError: amount not a positive int, same account on both
                sides, or missing description
            NotFoundError: Either account does not exist
            InvalidStateError: Either account is archived
        """
        try:
            self._validator.ensure_valid(self._validator.validate_transaction(
                from_account_id, to_account_id, amount, description,
            ))

            with self._locks.hold(ACCOUNT_LOCK, from_account_id, to_account_id):
                from_account = self._require_account(from_account_id)
                to_account = self._require_account(to_account_id)
                for account in (from_account, to_account):
                    if not account.is_active:
                        raise InvalidStateError(
                            "ACCOUNT_ARCHIVED",
                            f"Account '{account.name}' is archived",
                        )

                try:
                    transaction = Transaction(
                        from_account_id=from_account.id,
                        to_account_id=to_account.id,
                        amount=amount,
                        description=description,
                        date=date,
                        category=category,
                        tags=list(tags or []),
                        recurring_rule_id=recurring_rule_id,
                    )
                except PydanticValidationError as e:
                    raise self._validator.from_model_error(e) from e

                restore = self._apply(transaction, from_account, to_account, direction=1)
                try:
                    self._storage.save_transaction(transaction)
                except Exception:
                    restore()
                    raise
        except (ValidationError, NotFoundError, InvalidStateError) as e:
            if self._audit_logger:
                self._audit_logger.log_transaction_rejected(
                    from_account_id=from_account_id,
                    to_account_id=to_account_id,
                    amount=amount,
                    error=e,
                    correlation_id=correlation_id,
                )
            raise

        classified = ClassifiedTransaction(
            transaction=transaction,
            from_account_type=from_account.type,
            to_account_type=to_account.type,
        )
        if self._audit_logger:
            self._audit_logger.log_transaction_posted(
                transaction_id=transaction.id,
                from_account_id=transaction.from_account_id,
                to_account_id=transaction.to_account_id,
                amount=transaction.amount,
                classification=classified.classification.value,
                correlation_id=correlation_id,
            )
        return classified

    def delete_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Remove a transaction and reverse its effect on stored balances.

        Raises:
            NotFoundError: Unknown transaction
            InvalidStateError: One of its accounts is archived (reversing
                would move an archived balance off zero)
        """
        transaction = self._storage.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)

        with self._locks.hold(ACCOUNT_LOCK, transaction.from_account_id, transaction.to_account_id):
            # Re-read under the locks; a concurrent delete may have won
            if self._storage.get_transaction(transaction_id) is None:
                raise NotFoundError("transaction", transaction_id)

            from_account = self._require_account(transaction.from_account_id)
            to_account = self._require_account(transaction.to_account_id)
            for account in (from_account, to_account):
                if not account.is_active:
                    raise InvalidStateError(
                        "ACCOUNT_ARCHIVED",
                        f"Account '{account.name}' is archived; restore it first",
                    )

            restore = self._apply(transaction, from_account, to_account, direction=-1)
            try:
                self._storage.delete_transaction(transaction.id)
            except Exception:
                restore()
                raise

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.transaction_deleted(
                transaction_id=transaction.id,
                amount=transaction.amount,
                correlation_id=correlation_id,
            ))
        return transaction

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_account(self, account_id: UUID) -> LedgerAccount:
        return self._require_account(account_id)

    def account_balance(self, account_id: UUID) -> int:
        """Stored value for asset/liability, transaction sum for income/expense."""
        account = self._require_account(account_id)
        if isinstance(account, StoredBalanceAccount):
            return account.balance
        return account.recompute_balance(self._storage.list_transactions(account_id=account.id))

    def get_account_with_balance(self, account_id: UUID) -> AccountWithBalance:
        account = self._require_account(account_id)
        transactions = self._storage.list_transactions(account_id=account.id)
        return self._with_balance(account, transactions)

    def list_accounts(
        self,
        account_type: Optional[Union[AccountType, str]] = None,
        status: Optional[Union[AccountStatus, str]] = None,
        search_term: Optional[str] = None,
    ) -> list[LedgerAccount]:
        """Accounts sorted by name, optionally filtered."""
        account_type = AccountType(account_type) if account_type else None
        status = AccountStatus(status) if status else None
        term = search_term.strip().lower() if search_term else None

        accounts = [
            account for account in self._storage.list_accounts()
            if (account_type is None or account.type == account_type)
            and (status is None or account.status == status)
            and (not term or term in account.name.lower())
        ]
        return sorted(accounts, key=lambda a: a.name.lower())

    def list_accounts_with_balances(
        self,
        account_type: Optional[Union[AccountType, str]] = None,
        status: Optional[Union[AccountStatus, str]] = None,
        search_term: Optional[str] = None,
    ) -> list[AccountWithBalance]:
        """Like list_accounts, with balances and transaction counts in one pass."""
        accounts = self.list_accounts(account_type, status, search_term)
        transactions = self._storage.list_transactions()
        return [
            self._with_balance(account, [t for t in transactions if t.touches(account.id)])
            for account in accounts
        ]

    def child_accounts(self, account_id: UUID) -> list[LedgerAccount]:
        self._require_account(account_id)
        return sorted(self._children_of(account_id), key=lambda a: a.name.lower())

    def get_transaction(self, transaction_id: UUID) -> ClassifiedTransaction:
        transaction = self._storage.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)
        return self.classify(transaction)

    def list_transactions(
        self,
        transaction_filter: Optional[TransactionFilter] = None,
    ) -> list[ClassifiedTransaction]:
        """Matching transactions, most recent first."""
        transaction_filter = transaction_filter or TransactionFilter()
        types = {account.id: account.type for account in self._storage.list_accounts()}

        candidates = self._storage.list_transactions(account_id=transaction_filter.account_id)
        matching = sorted(
            (t for t in candidates if transaction_filter.matches(t)),
            key=lambda t: t.sort_key(),
            reverse=True,
        )

        start = transaction_filter.offset
        end = start + transaction_filter.limit if transaction_filter.limit else None
        return [
            ClassifiedTransaction(
                transaction=t,
                from_account_type=types[t.from_account_id],
                to_account_type=types[t.to_account_id],
            )
            for t in matching[start:end]
        ]

    def all_transactions(self) -> list[Transaction]:
        """Every transaction in chronological order."""
        return sorted(self._storage.list_transactions(), key=lambda t: t.sort_key())

    def classify(self, transaction: Transaction) -> ClassifiedTransaction:
        """Attach the current types of the transaction's accounts."""
        return ClassifiedTransaction(
            transaction=transaction,
            from_account_type=self._require_account(transaction.from_account_id).type,
            to_account_type=self._require_account(transaction.to_account_id).type,
        )

    def verify_balances(self) -> dict[UUID, tuple[int, int]]:
        """
        Recompute every stored balance from its opening balance and postings.

        Returns:
            {account_id: (stored, expected)} for each account that disagrees.
            Empty when the ledger is consistent.
        """
        transactions = self._storage.list_transactions()
        discrepancies = {}
        for account in self._storage.list_accounts():
            if not isinstance(account, StoredBalanceAccount):
                continue
            expected = account.opening_balance + sum(
                t.signed_amount_for(account.id) for t in transactions
            )
            if expected != account.balance:
                discrepancies[account.id] = (account.balance, expected)
        return discrepancies

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_account(self, account_id: UUID) -> LedgerAccount:
        account = self._storage.get_account(account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        return account

    def _require_parent(self, parent_id: UUID, account_type: AccountType) -> LedgerAccount:
        parent = self._storage.get_account(parent_id)
        if parent is None:
            raise ValidationError.single(
                "parent_account_id",
                "PARENT_NOT_FOUND",
                f"Parent account {parent_id} does not exist",
            )
        if parent.type != account_type:
            raise ValidationError.single(
                "parent_account_id",
                "PARENT_TYPE_MISMATCH",
                f"Parent account must be of type '{account_type.value}', not '{parent.type.value}'",
            )
        return parent

    def _ensure_unique_name(
        self,
        name: str,
        account_type: AccountType,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        lowered = name.lower()
        for account in self._storage.list_accounts():
            if account.id != exclude_id and account.type == account_type and account.name.lower() == lowered:
                raise ValidationError.single(
                    "name",
                    "DUPLICATE_NAME",
                    f"Account '{name}' already exists for type '{account_type.value}'",
                )

    def _ensure_no_cycle(self, account_id: UUID, new_parent_id: UUID) -> None:
        seen = set()
        current: Optional[UUID] = new_parent_id
        while current is not None and current not in seen:
            if current == account_id:
                raise ValidationError.single(
                    "parent_account_id",
                    "PARENT_CYCLE",
                    "An account cannot be its own ancestor",
                )
            seen.add(current)
            ancestor = self._storage.get_account(current)
            current = ancestor.parent_account_id if ancestor else None

    def _children_of(self, account_id: UUID) -> list[LedgerAccount]:
        return [a for a in self._storage.list_accounts() if a.parent_account_id == account_id]

    def _apply(
        self,
        transaction: Transaction,
        from_account: LedgerAccount,
        to_account: LedgerAccount,
        direction: int,
    ):
        """
        Apply (direction=1) or reverse (direction=-1) a transaction's effect
        on stored balances. Caller holds both account locks.

        Returns a callable that puts the original account records back.
        If a save fails midway, the accounts already saved are restored
        before the error propagates.
        """
        now = utc_now()
        saved: list[LedgerAccount] = []

        def restore() -> None:
            for original in reversed(saved):
                self._storage.save_account(original)

        delta = transaction.amount * direction
        try:
            for account, signed in ((from_account, -delta), (to_account, delta)):
                if isinstance(account, StoredBalanceAccount):
                    self._storage.save_account(account.with_balance_delta(signed, now))
                    saved.append(account)
        except Exception:
            restore()
            raise
        return restore

    def _with_balance(
        self,
        account: LedgerAccount,
        transactions: list[Transaction],
    ) -> AccountWithBalance:
        if isinstance(account, DerivedBalanceAccount):
            balance = account.recompute_balance(transactions)
        else:
            balance = account.balance
        return AccountWithBalance(
            **account.model_dump(exclude={"balance", "opening_balance"}),
            balance=balance,
            transaction_count=len(transactions),
        )

    def _log_account_change(
        self,
        event_type: AuditEventType,
        account: LedgerAccount,
        changes: Optional[dict[str, Any]],
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.account_changed(
                event_type=event_type,
                account_id=account.id,
                name=account.name,
                changes=changes,
                correlation_id=correlation_id,
            ))
