"""Bulk component price refresh.

Components with a vendor link are refreshed one after the other: one
lookup, one save, then the next. A failed item is recorded and the batch
moves on. Cancellation is cooperative and checked before each item, so the
item in flight always finishes.

Per item: pending -> updating -> success | error.
Per run:  idle -> running -> done | cancelled.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, List, Optional

from config.constants import COLLECTION_COMPONENTS, UNCATEGORIZED_LABEL
from domain.models import Component
from domain.services.money import round_money
from infrastructure.api.price_lookup import PriceLookup
from infrastructure.persistence.documents import component_to_document
from infrastructure.persistence.record_store import RecordStore

logger = logging.getLogger(__name__)


class RefreshStatus(str, Enum):
    PENDING = "pending"
    UPDATING = "updating"
    SUCCESS = "success"
    ERROR = "error"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"
    DONE = "done"


class CancellationToken:
    """Thread-safe cancel flag shared between the runner and the UI."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class PriceRefreshItem:
    component_id: str
    name: str
    category: str
    old_price: Decimal
    status: RefreshStatus = RefreshStatus.PENDING
    new_price: Optional[Decimal] = None
    error: Optional[str] = None


@dataclass
class PriceRefreshReport:
    """Outcome of every queued item, including those never reached."""

    items: List[PriceRefreshItem]
    state: RunState

    def _with_status(self, status: RefreshStatus) -> List[PriceRefreshItem]:
        return [item for item in self.items if item.status == status]

    @property
    def succeeded(self) -> List[PriceRefreshItem]:
        return self._with_status(RefreshStatus.SUCCESS)

    @property
    def failed(self) -> List[PriceRefreshItem]:
        return self._with_status(RefreshStatus.ERROR)

    @property
    def pending(self) -> List[PriceRefreshItem]:
        return self._with_status(RefreshStatus.PENDING)

    @property
    def attempted(self) -> List[PriceRefreshItem]:
        return [item for item in self.items if item.status != RefreshStatus.PENDING]


# (item snapshot, index in queue, queue length)
ProgressCallback = Callable[[PriceRefreshItem, int, int], None]


class BulkPriceRefresh:
    """Sequential price refresh driver."""

    def __init__(
        self,
        price_lookup: PriceLookup,
        store: RecordStore,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._price_lookup = price_lookup
        self._store = store
        self._on_progress = on_progress
        self._state = RunState.IDLE
        self._current_index: Optional[int] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def current_index(self) -> Optional[int]:
        return self._current_index

    @staticmethod
    def select_components(
        components: Iterable[Component], category: Optional[str] = None
    ) -> List[Component]:
        """Components that have a vendor link, optionally from one category.

        The "Sin categoría" label selects components without a category.
        """
        wanted = (category or "").strip().lower()
        if wanted == UNCATEGORIZED_LABEL.lower():
            return [c for c in components if c.has_link and not (c.category or "").strip()]
        selected = []
        for component in components:
            if not component.has_link:
                continue
            if wanted and (component.category or "").strip().lower() != wanted:
                continue
            selected.append(component)
        return selected

    def run(
        self,
        components: Iterable[Component],
        category: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> PriceRefreshReport:
        queue = self.select_components(components, category)
        items = [self._new_item(component) for component in queue]
        total = len(queue)
        self._state = RunState.RUNNING
        logger.info("Price refresh started: %d components (category=%s)", total, category or "*")

        for index, component in enumerate(queue):
            if token is not None and token.cancelled:
                self._state = RunState.CANCELLED
                logger.info("Price refresh cancelled before item %d/%d", index + 1, total)
                break
            self._current_index = index
            self._process(component, items[index], index, total)
        else:
            self._state = RunState.DONE

        self._current_index = None
        report = PriceRefreshReport(items=items, state=self._state)
        logger.info(
            "Price refresh %s: %d ok, %d failed, %d not reached",
            self._state.value,
            len(report.succeeded),
            len(report.failed),
            len(report.pending),
        )
        return report

    def refresh_single(self, component: Component) -> PriceRefreshItem:
        """Refresh one component regardless of the batch state."""
        item = self._new_item(component)
        if not component.has_link:
            item.status = RefreshStatus.ERROR
            item.error = "Component has no vendor link"
            return item
        self._process(component, item, 0, 1)
        return item

    def _new_item(self, component: Component) -> PriceRefreshItem:
        return PriceRefreshItem(
            component_id=component.id,
            name=component.name,
            category=component.category,
            old_price=component.price,
        )

    def _process(self, component: Component, item: PriceRefreshItem, index: int, total: int) -> None:
        item.status = RefreshStatus.UPDATING
        self._emit(item, index, total)
        logger.debug("Refreshing %s (%d/%d) from %s", component.name, index + 1, total, component.link)
        try:
            new_price = round_money(self._price_lookup.fetch_price(component.link or ""))
            self._store.put(COLLECTION_COMPONENTS, component_to_document(replace(component, price=new_price)))
        except Exception as exc:  # noqa: BLE001 - one failed item must not stop the batch
            logger.exception("Price refresh failed for %s: %s", component.name, exc)
            item.status = RefreshStatus.ERROR
            item.error = str(exc) or exc.__class__.__name__
        else:
            component.price = new_price
            item.status = RefreshStatus.SUCCESS
            item.new_price = new_price
        self._emit(item, index, total)

    def _emit(self, item: PriceRefreshItem, index: int, total: int) -> None:
        if self._on_progress is None:
            return
        self._on_progress(replace(item), index, total)
