from typing import Dict, List, Optional

from models import ClientAccount, AccountSnapshot


class AccountStore:
    """
    Holds one ClientAccount per client id.
    Sole owner of balance state for a ledger run.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, client_id: int) -> bool:
        return client_id in self._accounts

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create a zeroed, unlocked one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        """Retrieve account without creating it."""
        return self._accounts.get(client_id)

    def accounts(self) -> List[ClientAccount]:
        return list(self._accounts.values())

    def snapshot(self) -> List[AccountSnapshot]:
        """Final account states ordered by client id, rounded to four places."""
        return [
            AccountSnapshot.from_account(self._accounts[client_id])
            for client_id in sorted(self._accounts)
        ]
