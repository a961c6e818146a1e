"""ORM model registry.

Importing this package imports every model module, so every mapper class is
registered with Base.metadata before Alembic or SQLAlchemy runs.

Import order follows the dependency graph (referenced tables first).
"""

from booking_core.infrastructure.persistence.models.catalog import (
    Accommodation,
    Destination,
    EntityTag,
    Event,
    EventOrganizer,
    Tag,
)
from booking_core.infrastructure.persistence.models.billing import (
    CreditNote,
    DiscountCode,
    DiscountCodeUsage,
    Invoice,
    InvoiceLine,
    Payment,
    PricingPlan,
    Promotion,
    Subscription,
)
from booking_core.infrastructure.persistence.models.advertising import (
    AdPricingCatalog,
    AdSlotReservation,
)

__all__ = [
    # Catalog
    "Destination",
    "Accommodation",
    "Tag",
    "EntityTag",
    "EventOrganizer",
    "Event",
    # Billing
    "PricingPlan",
    "Subscription",
    "Invoice",
    "InvoiceLine",
    "Payment",
    "CreditNote",
    "Promotion",
    "DiscountCode",
    "DiscountCodeUsage",
    # Advertising
    "AdPricingCatalog",
    "AdSlotReservation",
]
