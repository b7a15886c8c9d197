"""Domain models.

Core business entities that represent the problem domain.
These models are framework-agnostic and contain only business logic.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional, Union

from config.constants import (
    COMPOSITE_CATEGORY,
    DEFAULT_PAYMENT_METHOD,
    FABRIC_CATEGORY,
    PRODUCT_TYPE_COMPOSITE,
    PRODUCT_TYPE_SIMPLE,
)


@dataclass
class Component:
    """A purchasable material or labor unit.

    Mutable because the bulk price refresh overwrites ``price``.
    """

    id: str
    name: str
    category: str = ""
    price: Decimal = Decimal("0")
    unit_divisor: int = 1
    available: Decimal = Decimal("0")
    link: Optional[str] = None
    featured: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Validate component data."""
        if self.id is None or str(self.id) == "":
            raise ValueError("Component id cannot be empty")
        self.id = str(self.id)
        if self.unit_divisor is None or self.unit_divisor < 1:
            self.unit_divisor = 1

    @property
    def effective_unit_price(self) -> Decimal:
        """Purchase price spread over the units in one purchase."""
        return self.price / Decimal(max(self.unit_divisor, 1))

    @property
    def is_fabric(self) -> bool:
        return (self.category or "").strip().lower() == FABRIC_CATEGORY

    @property
    def has_link(self) -> bool:
        return bool((self.link or "").strip())


@dataclass(frozen=True)
class FabricRow:
    """A cut piece of fabric and its derived material cost.

    Every field is optional while the row is being filled in.
    """

    component_id: Optional[str] = None
    ancho_tela_cm: Optional[Decimal] = None
    precio_por_metro: Optional[Decimal] = None
    valor_cm2: Optional[Decimal] = None
    ancho_cm: Optional[Decimal] = None
    largo_cm: Optional[Decimal] = None
    material_puro_cm2: Optional[Decimal] = None
    porcentaje_desperdicio: Optional[Decimal] = None
    total_material_cm2: Optional[Decimal] = None
    costo_material: Optional[Decimal] = None

    @property
    def is_selected(self) -> bool:
        return bool(self.component_id)


@dataclass(frozen=True)
class OtherMaterialRow:
    """A non-fabric line item (hardware, thread, tailoring labor...)."""

    component_id: Optional[str] = None
    unidades: Optional[Decimal] = None
    precio_unitario: Optional[Decimal] = None
    tag_confeccion: bool = False

    @property
    def is_selected(self) -> bool:
        return bool(self.component_id)

    @property
    def total(self) -> Decimal:
        return (self.unidades or Decimal("0")) * (self.precio_unitario or Decimal("0"))


@dataclass(frozen=True)
class PriceAdjustment:
    """Named percentage applied on top of a product's base price."""

    name: str
    percent: Decimal = Decimal("0")


@dataclass(frozen=True)
class CompositeItem:
    """Reference from a composite product to one of its parts."""

    product_id: str
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass
class SimpleProduct:
    """A product costed from its own fabric and material rows."""

    type: ClassVar[str] = PRODUCT_TYPE_SIMPLE

    id: Optional[str]
    name: str
    category: str = ""
    available: int = 0
    featured: bool = False
    comment: str = ""
    image: Optional[str] = None
    price: Decimal = Decimal("0")
    costo_confeccion: Decimal = Decimal("0")
    telas: list[FabricRow] = field(default_factory=list)
    otros: list[OtherMaterialRow] = field(default_factory=list)
    price_adjustments: list[PriceAdjustment] = field(default_factory=list)
    defaults_migrated: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.id is not None:
            self.id = str(self.id)

    @property
    def is_composite(self) -> bool:
        return False

    @property
    def has_material_rows(self) -> bool:
        return bool(self.telas) or bool(self.otros)


@dataclass
class CompositeProduct:
    """A "set" product whose cost is the sum of other products.

    Category is always the locked composite category.
    """

    type: ClassVar[str] = PRODUCT_TYPE_COMPOSITE

    id: Optional[str]
    name: str
    category: str = COMPOSITE_CATEGORY
    available: int = 0
    featured: bool = False
    comment: str = ""
    image: Optional[str] = None
    composite_items: list[CompositeItem] = field(default_factory=list)
    price_adjustments: list[PriceAdjustment] = field(default_factory=list)
    defaults_migrated: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.id is not None:
            self.id = str(self.id)
        self.category = COMPOSITE_CATEGORY

    @property
    def is_composite(self) -> bool:
        return True

    @property
    def has_material_rows(self) -> bool:
        return False


Product = Union[SimpleProduct, CompositeProduct]


@dataclass
class Sale:
    """A recorded sale.

    Payment fields are ``None`` when the stored record never set them; the
    reconciliation treats "absent" differently from zero.
    """

    product_id: str
    quantity: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    ganancia_unit: Decimal = Decimal("0")
    id: Optional[str] = None
    date: Optional[str] = None
    customer_name: Optional[str] = None
    total: Optional[Decimal] = None
    real_sale_value: Optional[Decimal] = None
    payment_received: Optional[Decimal] = None
    payment_pending: Optional[Decimal] = None
    payment_method: str = DEFAULT_PAYMENT_METHOD
    payment_notes: str = ""
    payment_status: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.id is not None:
            self.id = str(self.id)
        self.product_id = str(self.product_id) if self.product_id is not None else ""


# ============================================================================
# Computation Results
# ============================================================================


@dataclass(frozen=True)
class CostBreakdownEntry:
    id: Optional[str]
    name: str
    type: str
    cost_materials: Decimal
    estimated_gain: Decimal


@dataclass(frozen=True)
class ProductCostSummary:
    """Aggregated cost of a product (recursive for composites)."""

    cost_materials: Decimal = Decimal("0")
    estimated_gain: Decimal = Decimal("0")
    is_composite: bool = False
    breakdown: tuple[CostBreakdownEntry, ...] = ()

    @property
    def total(self) -> Decimal:
        return self.cost_materials + self.estimated_gain


@dataclass(frozen=True)
class AdjustedPrice:
    name: str
    percent: Decimal
    corrected: Decimal


@dataclass(frozen=True)
class PaymentSplit:
    """Received/pending pair that always adds up to ``total``."""

    total: Decimal
    payment_received: Decimal
    payment_pending: Decimal


@dataclass(frozen=True)
class SaleFinancials:
    quantity: Decimal
    unit_cost: Decimal
    estimated_gain: Decimal
    cost_materials: Decimal
    computed_total: Decimal
    fallback_total: Decimal
    real_sale_value: Optional[Decimal]
    effective_sale_value: Decimal
    payment_received: Decimal
    payment_pending: Decimal
    payment_status: str

    @property
    def real_profit(self) -> Decimal:
        """Sale value actually obtained minus materials."""
        value = self.real_sale_value if self.real_sale_value is not None else self.effective_sale_value
        return value - self.cost_materials
