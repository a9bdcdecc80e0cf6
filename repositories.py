from abc import ABC, abstractmethod
from typing import Dict, Optional

from models import Account, ClientId, DepositRecord, DisputeStatus, TransactionId


class AccountRepository(ABC):
    @abstractmethod
    def get_account(self, client: ClientId) -> Optional[Account]:
        """Get account. Returns None if the client has no account yet."""
        pass

    @abstractmethod
    def get_or_create_account(self, client: ClientId) -> Account:
        """Get account, creating an empty one on first reference."""
        pass

    @abstractmethod
    def save_account(self, account: Account) -> None:
        """Replace the stored account with the given value."""
        pass

    @abstractmethod
    def all_accounts(self) -> Dict[ClientId, Account]:
        """Get a snapshot of every account."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass


class DepositRepository(ABC):
    @abstractmethod
    def get_deposit(self, tx: TransactionId) -> Optional[DepositRecord]:
        """Get an applied deposit by transaction id."""
        pass

    @abstractmethod
    def store_deposit(self, tx: TransactionId, deposit: DepositRecord) -> None:
        """Record an applied deposit."""
        pass

    @abstractmethod
    def get_deposits_count(self) -> int:
        """Get total number of recorded deposits."""
        pass


class DisputeRepository(ABC):
    @abstractmethod
    def get_status(self, tx: TransactionId) -> Optional[DisputeStatus]:
        """Get dispute status. Returns None if the transaction was never disputed."""
        pass

    @abstractmethod
    def set_status(self, tx: TransactionId, status: DisputeStatus) -> None:
        """Set dispute status."""
        pass

    @abstractmethod
    def get_disputes_count(self) -> int:
        """Get total number of disputed transactions."""
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[ClientId, Account] = {}

    def get_account(self, client: ClientId) -> Optional[Account]:
        return self.accounts.get(client)

    def get_or_create_account(self, client: ClientId) -> Account:
        if client not in self.accounts:
            self.accounts[client] = Account(client=client)
        return self.accounts[client]

    def save_account(self, account: Account) -> None:
        if account.client not in self.accounts:
            raise ValueError(f"Account {account.client} does not exist")
        self.accounts[account.client] = account

    def all_accounts(self) -> Dict[ClientId, Account]:
        return dict(self.accounts)

    def get_accounts_count(self) -> int:
        return len(self.accounts)


class InMemoryDepositRepository(DepositRepository):
    def __init__(self):
        self.deposits: Dict[TransactionId, DepositRecord] = {}

    def get_deposit(self, tx: TransactionId) -> Optional[DepositRecord]:
        return self.deposits.get(tx)

    def store_deposit(self, tx: TransactionId, deposit: DepositRecord) -> None:
        if tx in self.deposits:
            raise ValueError(f"Deposit {tx} is already recorded")
        self.deposits[tx] = deposit

    def get_deposits_count(self) -> int:
        return len(self.deposits)


class InMemoryDisputeRepository(DisputeRepository):
    def __init__(self):
        self.statuses: Dict[TransactionId, DisputeStatus] = {}

    def get_status(self, tx: TransactionId) -> Optional[DisputeStatus]:
        return self.statuses.get(tx)

    def set_status(self, tx: TransactionId, status: DisputeStatus) -> None:
        self.statuses[tx] = status

    def get_disputes_count(self) -> int:
        return len(self.statuses)
