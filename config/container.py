"""Dependency Injection container.

Provides centralized dependency management for the application.
"""

from typing import Optional

from application.price_refresh import BulkPriceRefresh, ProgressCallback
from application.use_cases import (
    ComputeProductCostUseCase,
    CopyProductUseCase,
    DeleteComponentUseCase,
    DeleteProductUseCase,
    DeleteSaleUseCase,
    ExportProductCostsUseCase,
    ListComponentsUseCase,
    ListSalesUseCase,
    LoadProductDetailUseCase,
    RegisterSaleUseCase,
    SalesReportUseCase,
    SaveComponentUseCase,
    SaveProductDetailUseCase,
    UpdateSaleDetailsUseCase,
    UpdateSaleUseCase,
)
from config.settings import Settings, load_settings
from infrastructure.api.price_lookup import HTTPPriceLookup, PriceLookup
from infrastructure.persistence.excel_exporter import ExcelExporter
from infrastructure.persistence.http_record_store import HTTPRecordStore
from infrastructure.persistence.record_store import JSONFileRecordStore, RecordStore


class Container:
    """Dependency injection container.

    Provides singleton instances of services and use cases.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[RecordStore] = None,
        price_lookup: Optional[PriceLookup] = None,
    ) -> None:
        """Initialize container.

        Args:
            settings: Runtime settings (if None, read from the environment)
            store: Record store (if None, built from settings)
            price_lookup: Price lookup (if None, built from settings on first use)
        """
        self._settings = settings if settings is not None else load_settings()
        self._store = store
        self._price_lookup = price_lookup

        # Lazy-initialized singletons
        self._excel_exporter: Optional[ExcelExporter] = None

        self._list_components: Optional[ListComponentsUseCase] = None
        self._save_component: Optional[SaveComponentUseCase] = None
        self._delete_component: Optional[DeleteComponentUseCase] = None
        self._load_product_detail: Optional[LoadProductDetailUseCase] = None
        self._save_product_detail: Optional[SaveProductDetailUseCase] = None
        self._copy_product: Optional[CopyProductUseCase] = None
        self._delete_product: Optional[DeleteProductUseCase] = None
        self._compute_product_cost: Optional[ComputeProductCostUseCase] = None
        self._export_product_costs: Optional[ExportProductCostsUseCase] = None
        self._register_sale: Optional[RegisterSaleUseCase] = None
        self._update_sale: Optional[UpdateSaleUseCase] = None
        self._update_sale_details: Optional[UpdateSaleDetailsUseCase] = None
        self._delete_sale: Optional[DeleteSaleUseCase] = None
        self._list_sales: Optional[ListSalesUseCase] = None
        self._sales_report: Optional[SalesReportUseCase] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    # Infrastructure
    @property
    def store(self) -> RecordStore:
        """Get record store (REST API when configured, JSON files otherwise)."""
        if self._store is None:
            if self._settings.api_url:
                self._store = HTTPRecordStore(base_url=self._settings.api_url)
            else:
                self._store = JSONFileRecordStore(base_directory=self._settings.store_path)
        return self._store

    @property
    def price_lookup(self) -> PriceLookup:
        """Get external price lookup.

        Raises:
            PriceLookupNotConfiguredError: If no lookup endpoint is configured
        """
        if self._price_lookup is None:
            self._price_lookup = HTTPPriceLookup(
                endpoint=self._settings.price_lookup_url,
                timeout=self._settings.price_lookup_timeout,
                minor_units=self._settings.price_lookup_minor_units,
            )
        return self._price_lookup

    @property
    def excel_exporter(self) -> ExcelExporter:
        """Get Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ExcelExporter()
        return self._excel_exporter

    # Workflows
    def price_refresh(self, on_progress: Optional[ProgressCallback] = None) -> BulkPriceRefresh:
        """Create a price refresh run (one per batch, it holds run state)."""
        return BulkPriceRefresh(
            price_lookup=self.price_lookup,
            store=self.store,
            on_progress=on_progress,
        )

    # Use Cases
    @property
    def list_components(self) -> ListComponentsUseCase:
        if self._list_components is None:
            self._list_components = ListComponentsUseCase(self.store)
        return self._list_components

    @property
    def save_component(self) -> SaveComponentUseCase:
        if self._save_component is None:
            self._save_component = SaveComponentUseCase(self.store)
        return self._save_component

    @property
    def delete_component(self) -> DeleteComponentUseCase:
        if self._delete_component is None:
            self._delete_component = DeleteComponentUseCase(self.store)
        return self._delete_component

    @property
    def load_product_detail(self) -> LoadProductDetailUseCase:
        if self._load_product_detail is None:
            self._load_product_detail = LoadProductDetailUseCase(self.store)
        return self._load_product_detail

    @property
    def save_product_detail(self) -> SaveProductDetailUseCase:
        if self._save_product_detail is None:
            self._save_product_detail = SaveProductDetailUseCase(self.store)
        return self._save_product_detail

    @property
    def copy_product(self) -> CopyProductUseCase:
        if self._copy_product is None:
            self._copy_product = CopyProductUseCase(self.store)
        return self._copy_product

    @property
    def delete_product(self) -> DeleteProductUseCase:
        if self._delete_product is None:
            self._delete_product = DeleteProductUseCase(self.store)
        return self._delete_product

    @property
    def compute_product_cost(self) -> ComputeProductCostUseCase:
        if self._compute_product_cost is None:
            self._compute_product_cost = ComputeProductCostUseCase(self.store)
        return self._compute_product_cost

    @property
    def export_product_costs(self) -> ExportProductCostsUseCase:
        if self._export_product_costs is None:
            self._export_product_costs = ExportProductCostsUseCase(
                costing=self.compute_product_cost,
                exporter=self.excel_exporter,
            )
        return self._export_product_costs

    @property
    def register_sale(self) -> RegisterSaleUseCase:
        if self._register_sale is None:
            self._register_sale = RegisterSaleUseCase(self.store)
        return self._register_sale

    @property
    def update_sale(self) -> UpdateSaleUseCase:
        if self._update_sale is None:
            self._update_sale = UpdateSaleUseCase(self.store)
        return self._update_sale

    @property
    def update_sale_details(self) -> UpdateSaleDetailsUseCase:
        if self._update_sale_details is None:
            self._update_sale_details = UpdateSaleDetailsUseCase(self.store)
        return self._update_sale_details

    @property
    def delete_sale(self) -> DeleteSaleUseCase:
        if self._delete_sale is None:
            self._delete_sale = DeleteSaleUseCase(self.store)
        return self._delete_sale

    @property
    def list_sales(self) -> ListSalesUseCase:
        if self._list_sales is None:
            self._list_sales = ListSalesUseCase(self.store)
        return self._list_sales

    @property
    def sales_report(self) -> SalesReportUseCase:
        """Get sales report use case."""
        if self._sales_report is None:
            self._sales_report = SalesReportUseCase(
                store=self.store,
                exporter=self.excel_exporter,
            )
        return self._sales_report
