"""
Engine wiring and FastAPI dependencies
"""

from typing import Optional

from ..clients import ClientRegistry
from ..config import get_config
from ..loans import LoanLedger
from ..reporting import ReportingEngine
from ..storage import InMemoryStorage, SQLiteStorage, StorageInterface


class LoanbookSystem:
    """Lending engine with all components initialized over one store"""

    def __init__(self, storage: Optional[StorageInterface] = None):
        if storage is None:
            config = get_config()
            if config.use_sqlite:
                storage = SQLiteStorage(config.database_path)
            else:
                storage = InMemoryStorage()

        self.storage = storage
        self.client_registry = ClientRegistry(self.storage)
        self.loan_ledger = LoanLedger(self.storage, self.client_registry)
        self.reporting_engine = ReportingEngine(self.loan_ledger, self.client_registry)

    def close(self) -> None:
        self.storage.close()


_system: Optional[LoanbookSystem] = None


def get_system() -> LoanbookSystem:
    """Dependency returning the process-wide system, created on first use"""
    global _system
    if _system is None:
        _system = LoanbookSystem()
    return _system
