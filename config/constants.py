"""Application constants.

Centralized location for the magic numbers and strings used by the
costing, payment and price refresh code.
"""

from decimal import Decimal

# ============================================================================
# Money
# ============================================================================

MONEY_QUANTUM = Decimal("0.01")
MODIFIER_QUANTUM = Decimal("0.0001")
PERCENT_QUANTUM = Decimal("0.01")
MONEY_TOLERANCE = Decimal("0.01")

# ============================================================================
# Catalog
# ============================================================================

FABRIC_CATEGORY = "telas"
COMPOSITE_CATEGORY = "Set / Conjuntos"
CONFECCION_MARKER = "confeccion"

PRODUCT_TYPE_SIMPLE = "simple"
PRODUCT_TYPE_COMPOSITE = "composite"

UNCATEGORIZED_LABEL = "Sin categoría"

# Numeric fabric inputs rounded to cents on entry
FABRIC_INPUT_FIELDS = (
    "ancho_tela_cm",
    "ancho_cm",
    "largo_cm",
    "porcentaje_desperdicio",
)

# ============================================================================
# Price Adjustments
# ============================================================================

# (name, percent) ensured on products that were never migrated
DEFAULT_PRICE_ADJUSTMENTS = (
    ("Inflación", Decimal("2")),
    ("Con cuenta DNI", Decimal("2")),
    ("En dos veces", Decimal("15")),
    ("Con transferencia", Decimal("15")),
)

# Legacy names (accent-stripped, lower case) mapped to current names
PRICE_ADJUSTMENT_ALIASES = {
    "inflacion": "Inflación",
    "inflacion mensual": "Inflación",
    "cuenta dni": "Con cuenta DNI",
    "dni": "Con cuenta DNI",
    "con dni": "Con cuenta DNI",
    "dos cuotas": "En dos veces",
    "2 cuotas": "En dos veces",
    "en 2 veces": "En dos veces",
    "tarjeta": "En dos veces",
    "transferencia": "Con transferencia",
}

# Legacy names (accent-stripped, lower case) dropped on normalization
PRICE_ADJUSTMENTS_TO_DROP = {
    "efectivo",
    "con efectivo",
}

# ============================================================================
# Sales
# ============================================================================

PAYMENT_STATUS_PAID = "Pagado"
PAYMENT_STATUS_PENDING = "Pendiente de Pago"
PAYMENT_STATUS_PARTIAL = "Pago parcial"

DEFAULT_PAYMENT_METHOD = "Efectivo"
PAYMENT_METHODS = ("Efectivo", "Transferencia", "Tarjeta", "Cuenta DNI", "Otro")
OTHER_PAYMENT_METHOD = "Otro"

# ============================================================================
# Record Store
# ============================================================================

COLLECTION_COMPONENTS = "components"
COLLECTION_PRODUCTS = "products"
COLLECTION_SALES = "sales"

COLLECTION_ALIASES = {
    "productos": COLLECTION_PRODUCTS,
    "producto": COLLECTION_PRODUCTS,
    "componentes": COLLECTION_COMPONENTS,
    "ventas": COLLECTION_SALES,
}

STORE_DIRECTORY = "data"

# ============================================================================
# HTTP Configuration
# ============================================================================

# Timeouts (seconds)
HTTP_CONNECT_TIMEOUT = 3.05
PRICE_LOOKUP_READ_TIMEOUT = 15.0
STORE_READ_TIMEOUT = 20.0

# Retry configuration (idempotent reads only)
HTTP_MAX_RETRY_ATTEMPTS = 3
HTTP_RETRY_BACKOFF_FACTOR = 1.0
HTTP_RETRY_STATUS_CODES = (429, 500, 502, 503, 504)

# Connection pooling
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4

PRICE_LOOKUP_USER_AGENT = "Mozilla/5.0 (compatible; TallerLedger/1.0)"

# Vendor pages publish prices in minor units (price x 100)
VENDOR_MINOR_UNIT_DIVISOR = Decimal("100")

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Taller Ledger"
APP_VERSION = "0.3.0"
