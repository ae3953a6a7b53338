"""Composition root: builds the Ledger, Catalog and Orchestrator over one store backend.

Routers receive the Engine through Depends(get_engine); tests replace it via
app.dependency_overrides with build_memory_engine().
"""

import logging
from dataclasses import dataclass

from config.settings import settings
from src.bw_catalog.application.service import CatalogApplicationService
from src.bw_catalog.domain.catalog import Catalog
from src.bw_catalog.infrastructure.memory import (
    InMemoryLibraryStore,
    InMemoryListingStore,
    InMemoryPurchaseStore,
)
from src.bw_ledger.application.service import WalletApplicationService
from src.bw_ledger.domain.ledger import Ledger
from src.bw_ledger.infrastructure.memory import InMemoryAccountStore, InMemoryLedgerEntryStore
from src.bw_orchestrator.application.service import TransactionOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    ledger: Ledger
    catalog: Catalog
    orchestrator: TransactionOrchestrator
    wallet: WalletApplicationService
    catalog_service: CatalogApplicationService


def _assemble(ledger: Ledger, catalog: Catalog) -> Engine:
    return Engine(
        ledger=ledger,
        catalog=catalog,
        orchestrator=TransactionOrchestrator(ledger, catalog),
        wallet=WalletApplicationService(ledger),
        catalog_service=CatalogApplicationService(catalog),
    )


def build_memory_engine() -> Engine:
    ledger = Ledger(InMemoryAccountStore(), InMemoryLedgerEntryStore())
    catalog = Catalog(InMemoryListingStore(), InMemoryLibraryStore(), InMemoryPurchaseStore())
    return _assemble(ledger, catalog)


def build_postgres_engine() -> Engine:
    # Imported here so a memory-only run never creates the SQLAlchemy engine
    from src.bw_catalog.infrastructure.persistence import (
        LibraryStore,
        ListingStore,
        PurchaseStore,
    )
    from src.bw_ledger.infrastructure.persistence import AccountStore, LedgerEntryStore

    ledger = Ledger(AccountStore(), LedgerEntryStore())
    catalog = Catalog(ListingStore(), LibraryStore(), PurchaseStore())
    return _assemble(ledger, catalog)


_engine: Engine | None = None


def get_engine() -> Engine:
    """FastAPI dependency: the process-wide Engine for settings.STORE_BACKEND."""
    global _engine
    if _engine is None:
        if settings.STORE_BACKEND == "memory":
            _engine = build_memory_engine()
        else:
            _engine = build_postgres_engine()
        logger.info("Engine ready: backend=%s", settings.STORE_BACKEND)
    return _engine
