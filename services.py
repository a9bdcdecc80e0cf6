from dataclasses import replace
from types import MappingProxyType
from typing import Iterable, Mapping, Optional
import structlog

from config import Settings, get_settings
from models import (
    Account, ClientId, Chargeback, Deposit, DepositRecord, Dispute, DisputeStatus,
    LedgerStats, MalformedRecord, RawRecord, RejectionReason, Resolve, Transaction,
    TransactionResult, TransactionType, Withdrawal
)
from repositories import (
    AccountRepository, DepositRepository, DisputeRepository,
    InMemoryAccountRepository, InMemoryDepositRepository, InMemoryDisputeRepository
)

# Configure structured logging
logger = structlog.get_logger()


class LedgerService:
    """Replays transaction records against client accounts.

    Records are applied strictly in the order given. A record that cannot be
    applied is rejected without changing any state and reported through the
    logger; processing always continues with the next record.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        deposit_repo: DepositRepository,
        dispute_repo: DisputeRepository,
        freeze_locked_accounts: bool = True
    ):
        self.account_repo = account_repo
        self.deposit_repo = deposit_repo
        self.dispute_repo = dispute_repo
        self.freeze_locked_accounts = freeze_locked_accounts
        self.stats = LedgerStats()

    def process(self, records: Iterable[RawRecord]) -> Mapping[ClientId, Account]:
        """Consume every record and return the final accounts, keyed by client."""
        logger.info("Processing transactions", freeze_locked_accounts=self.freeze_locked_accounts)

        for record in records:
            self.process_record(record)

        accounts = self.account_repo.all_accounts()
        logger.info(
            "Transactions processed",
            accounts=self.account_repo.get_accounts_count(),
            deposits=self.deposit_repo.get_deposits_count(),
            disputes=self.dispute_repo.get_disputes_count(),
            **self.stats.as_dict()
        )
        return MappingProxyType(accounts)

    def process_record(self, record: RawRecord) -> TransactionResult:
        """Apply a single raw record and log the rejection, if any."""
        if isinstance(record, MalformedRecord):
            result = TransactionResult.rejected(RejectionReason.malformed_record, record.error)
            logger.error(
                "Malformed transaction record",
                line=record.line,
                reason=result.reason.value,
                detail=result.detail
            )
            self.stats.record(result)
            return result

        try:
            transaction = record.to_transaction()
        except ValueError as e:
            result = TransactionResult.rejected(RejectionReason.malformed_record, str(e))
            logger.error(
                "Malformed transaction",
                type=record.type.value,
                client=record.client,
                tx=record.tx,
                reason=result.reason.value,
                detail=result.detail
            )
            self.stats.record(result)
            return result

        result = self.apply(transaction)
        if not result.applied:
            logger.warning(
                "Transaction rejected",
                type=transaction.type.value,
                client=transaction.client,
                tx=transaction.tx,
                reason=result.reason.value,
                detail=result.detail
            )
        self.stats.record(result)
        return result

    def apply(self, transaction: Transaction) -> TransactionResult:
        """Apply one typed transaction. Never raises for a rejected transaction."""
        if transaction.type == TransactionType.deposit:
            return self._process_deposit(transaction)
        elif transaction.type == TransactionType.withdrawal:
            return self._process_withdrawal(transaction)
        elif transaction.type == TransactionType.dispute:
            return self._process_dispute(transaction)
        elif transaction.type == TransactionType.resolve:
            return self._process_resolve(transaction)
        elif transaction.type == TransactionType.chargeback:
            return self._process_chargeback(transaction)
        raise TypeError(f"Unsupported transaction: {transaction!r}")

    def _is_frozen(self, account: Account) -> bool:
        return account.locked and self.freeze_locked_accounts

    def _process_deposit(self, deposit: Deposit) -> TransactionResult:
        account = self.account_repo.get_or_create_account(deposit.client)

        if self._is_frozen(account):
            return TransactionResult.rejected(
                RejectionReason.account_locked,
                f"Account {account.client} is locked"
            )
        if self.deposit_repo.get_deposit(deposit.tx) is not None:
            return TransactionResult.rejected(
                RejectionReason.duplicate_transaction,
                f"Transaction {deposit.tx} was already deposited"
            )

        new_account = replace(account, available=account.available + deposit.amount)
        self.deposit_repo.store_deposit(deposit.tx, DepositRecord(deposit.client, deposit.amount))
        self.account_repo.save_account(new_account)

        logger.debug(
            "Deposit processed",
            client=deposit.client,
            tx=deposit.tx,
            amount=str(deposit.amount),
            old_available=str(account.available),
            new_available=str(new_account.available)
        )
        return TransactionResult.ok()

    def _process_withdrawal(self, withdrawal: Withdrawal) -> TransactionResult:
        account = self.account_repo.get_or_create_account(withdrawal.client)

        if self._is_frozen(account):
            return TransactionResult.rejected(
                RejectionReason.account_locked,
                f"Account {account.client} is locked"
            )
        if self.deposit_repo.get_deposit(withdrawal.tx) is not None:
            return TransactionResult.rejected(
                RejectionReason.duplicate_transaction,
                f"Transaction {withdrawal.tx} was already deposited"
            )
        if account.available < withdrawal.amount:
            return TransactionResult.rejected(
                RejectionReason.insufficient_funds,
                f"Available {account.available} is less than requested {withdrawal.amount}"
            )

        new_account = replace(account, available=account.available - withdrawal.amount)
        self.account_repo.save_account(new_account)

        logger.debug(
            "Withdrawal processed",
            client=withdrawal.client,
            tx=withdrawal.tx,
            amount=str(withdrawal.amount),
            old_available=str(account.available),
            new_available=str(new_account.available)
        )
        return TransactionResult.ok()

    def _check_reference(self, transaction: Transaction) -> Optional[TransactionResult]:
        """Reject a dispute, resolve or chargeback whose deposit cannot be used."""
        deposit = self.deposit_repo.get_deposit(transaction.tx)
        if deposit is None:
            return TransactionResult.rejected(
                RejectionReason.unknown_transaction,
                f"No deposit with transaction id {transaction.tx}"
            )
        if deposit.client != transaction.client:
            return TransactionResult.rejected(
                RejectionReason.client_mismatch,
                f"Transaction {transaction.tx} belongs to client {deposit.client}"
            )
        if self._is_frozen(self.account_repo.get_account(deposit.client)):
            return TransactionResult.rejected(
                RejectionReason.account_locked,
                f"Account {deposit.client} is locked"
            )
        return None

    def _check_open(self, transaction: Transaction) -> Optional[TransactionResult]:
        status = self.dispute_repo.get_status(transaction.tx)
        if status is None:
            return TransactionResult.rejected(
                RejectionReason.not_disputed,
                f"Transaction {transaction.tx} is not under dispute"
            )
        if status == DisputeStatus.closed:
            return TransactionResult.rejected(
                RejectionReason.dispute_closed,
                f"Dispute on transaction {transaction.tx} is already closed"
            )
        return None

    def _process_dispute(self, dispute: Dispute) -> TransactionResult:
        rejection = self._check_reference(dispute)
        if rejection is not None:
            return rejection

        status = self.dispute_repo.get_status(dispute.tx)
        if status is not None:
            return TransactionResult.rejected(
                RejectionReason.already_disputed,
                f"Transaction {dispute.tx} was already disputed ({status.value})"
            )

        deposit = self.deposit_repo.get_deposit(dispute.tx)
        account = self.account_repo.get_account(dispute.client)
        new_account = replace(
            account,
            available=account.available - deposit.amount,
            held=account.held + deposit.amount
        )
        self.dispute_repo.set_status(dispute.tx, DisputeStatus.open)
        self.account_repo.save_account(new_account)

        logger.debug(
            "Dispute opened",
            client=dispute.client,
            tx=dispute.tx,
            amount=str(deposit.amount),
            new_available=str(new_account.available),
            new_held=str(new_account.held)
        )
        return TransactionResult.ok()

    def _process_resolve(self, resolve: Resolve) -> TransactionResult:
        rejection = self._check_reference(resolve) or self._check_open(resolve)
        if rejection is not None:
            return rejection

        deposit = self.deposit_repo.get_deposit(resolve.tx)
        account = self.account_repo.get_account(resolve.client)
        new_account = replace(
            account,
            available=account.available + deposit.amount,
            held=account.held - deposit.amount
        )
        self.dispute_repo.set_status(resolve.tx, DisputeStatus.closed)
        self.account_repo.save_account(new_account)

        logger.debug(
            "Dispute resolved",
            client=resolve.client,
            tx=resolve.tx,
            amount=str(deposit.amount),
            new_available=str(new_account.available),
            new_held=str(new_account.held)
        )
        return TransactionResult.ok()

    def _process_chargeback(self, chargeback: Chargeback) -> TransactionResult:
        rejection = self._check_reference(chargeback) or self._check_open(chargeback)
        if rejection is not None:
            return rejection

        deposit = self.deposit_repo.get_deposit(chargeback.tx)
        account = self.account_repo.get_account(chargeback.client)
        # Chargebacks are never refused, even when they leave the total negative
        new_account = replace(
            account,
            held=account.held - deposit.amount,
            locked=True
        )
        self.dispute_repo.set_status(chargeback.tx, DisputeStatus.closed)
        self.account_repo.save_account(new_account)

        logger.info(
            "Chargeback applied, account locked",
            client=chargeback.client,
            tx=chargeback.tx,
            amount=str(deposit.amount),
            new_total=str(new_account.total)
        )
        return TransactionResult.ok()


# Factory function for dependency injection
def get_ledger_service(settings: Optional[Settings] = None) -> LedgerService:
    settings = settings or get_settings()
    return LedgerService(
        InMemoryAccountRepository(),
        InMemoryDepositRepository(),
        InMemoryDisputeRepository(),
        freeze_locked_accounts=settings.freeze_locked_accounts
    )
