"""
Dashboard Session

This module ties the pieces together for a consuming view:
1. Build the provider from configuration and wrap it with instrumentation
2. Keep one loader per entity, bound to the selected delegation
3. Hand out the enriched transaction view on demand

DESIGN DECISION: The session never reaches into the telemetry log.
Diagnostics views subscribe to the recorder on their own; the data
path only writes to it (through the instrumented provider).
"""

import asyncio
from typing import Any, Optional

from ledger_sync.config import Settings, get_settings
from ledger_sync.enrichment import enrich_transactions
from ledger_sync.loaders import (
    AccountsLoader,
    CategoriesLoader,
    DelegationsLoader,
    EntityLoader,
    TransactionsLoader,
)
from ledger_sync.models.entities import (
    Delegation,
    EnrichedTransaction,
    TransactionQuery,
)
from ledger_sync.services.provider import (
    DataProvider,
    InMemoryDataProvider,
    InstrumentedDataProvider,
)
from ledger_sync.telemetry import TelemetryRecorder, configure_logging, get_logger

logger = get_logger(__name__)


class DashboardSession:
    """
    Loaders for one dashboard, kept in step with the selected delegation.

    Accounts and transactions follow the delegation id; categories
    follow the delegation's organization id.
    """

    def __init__(
        self,
        provider: DataProvider,
        *,
        page_size: int = 50,
        **loader_options: Any,
    ):
        """
        Args:
            provider: Data source, normally an InstrumentedDataProvider
            page_size: Transactions per page for new selections
            loader_options: Passed to every loader (attempts, backoff)
        """
        self._provider = provider
        self._page_size = page_size
        self._delegation: Optional[Delegation] = None

        self.delegations = DelegationsLoader(provider, **loader_options)
        self.accounts = AccountsLoader(provider, **loader_options)
        self.categories = CategoriesLoader(provider, **loader_options)
        self.transactions = TransactionsLoader(provider, **loader_options)

    @property
    def provider(self) -> DataProvider:
        return self._provider

    @property
    def delegation(self) -> Optional[Delegation]:
        return self._delegation

    @property
    def loaders(self) -> list[EntityLoader]:
        return [self.delegations, self.accounts, self.categories, self.transactions]

    @property
    def loading(self) -> bool:
        return any(loader.loading for loader in self.loaders)

    @property
    def errors(self) -> dict[str, str]:
        """Current error per entity, for loaders that have one."""
        return {
            loader.entity_name: loader.error
            for loader in self.loaders
            if loader.error
        }

    def select(
        self,
        delegation: Delegation,
        query: Optional[TransactionQuery] = None,
    ) -> list[asyncio.Task]:
        """
        Switch the dashboard to a delegation.

        Loads already in flight for the previous delegation become stale.

        Args:
            delegation: The delegation to show
            query: Transaction filters; defaults to the first page, unfiltered

        Returns:
            The load tasks that were started (loaders already on the
            right key start nothing)
        """
        if query is None:
            query = TransactionQuery(
                delegation_id=delegation.id,
                page_size=self._page_size,
            )
        elif query.delegation_id != delegation.id:
            raise ValueError(
                f"Query is scoped to {query.delegation_id}, not {delegation.id}"
            )

        self._delegation = delegation
        logger.info(
            "delegation_selected",
            delegation_id=delegation.id,
            organization_id=delegation.organization_id,
        )

        tasks = [
            self.accounts.bind(delegation.id),
            self.categories.bind(delegation.organization_id),
            self.transactions.bind(query),
        ]
        return [task for task in tasks if task is not None]

    async def select_and_wait(
        self,
        delegation: Delegation,
        query: Optional[TransactionQuery] = None,
    ) -> None:
        """select() and wait for every started load to settle."""
        tasks = self.select(delegation, query)
        if tasks:
            await asyncio.gather(*tasks)

    def filter_transactions(self, **changes: Any) -> Optional[asyncio.Task]:
        """
        Change transaction filters or page for the current delegation.

        Any filter change goes back to page 1 unless a page is given.
        """
        if self._delegation is None:
            raise RuntimeError("No delegation selected")

        current = self.transactions.key or TransactionQuery(
            delegation_id=self._delegation.id,
            page_size=self._page_size,
        )
        data = current.model_dump()
        if "page" not in changes:
            data["page"] = 1
        data.update(changes)
        data["delegation_id"] = self._delegation.id

        return self.transactions.bind(TransactionQuery.model_validate(data))

    async def refresh(self) -> None:
        """Reload everything bound to the current delegation."""
        await asyncio.gather(
            self.accounts.refetch(),
            self.categories.refetch(),
            self.transactions.refetch(),
        )

    def enriched(self) -> list[EnrichedTransaction]:
        """Current transaction page joined with the current accounts and categories."""
        return enrich_transactions(
            self.transactions.data,
            self.accounts.data,
            self.categories.data,
        )

    def close(self) -> None:
        """Drop all loaded data; in-flight loads settle as stale."""
        self._delegation = None
        for loader in self.loaders:
            loader.reset()


def create_provider(
    settings: Optional[Settings] = None,
    recorder: Optional[TelemetryRecorder] = None,
) -> DataProvider:
    """
    Build the configured backend wrapped with instrumentation.

    The Google Sheets backend is imported lazily so that gspread and
    its credentials are only touched when that backend is selected.
    """
    settings = settings or get_settings()
    provider_settings = settings.provider

    if provider_settings.backend == "google_sheets":
        from ledger_sync.services.provider.google_sheets import (
            GoogleSheetsClient,
            GoogleSheetsDataProvider,
        )
        backend: DataProvider = GoogleSheetsDataProvider(
            GoogleSheetsClient(settings.google_sheets)
        )
    else:
        backend = InMemoryDataProvider(
            latency_ms=provider_settings.simulated_latency_ms,
        )

    return InstrumentedDataProvider(
        backend,
        recorder=recorder,
        timeout_ms=provider_settings.timeout_ms,
    )


def create_session(
    settings: Optional[Settings] = None,
    provider: Optional[DataProvider] = None,
    recorder: Optional[TelemetryRecorder] = None,
) -> DashboardSession:
    """
    Create a session from configuration.

    Use this at startup of the consuming application. Passing a
    provider skips backend construction (it is used as given).
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    if provider is None:
        provider = create_provider(settings, recorder)

    return DashboardSession(provider)
