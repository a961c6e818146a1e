"""Domain model package.

All domain objects are pure pydantic models with no ORM or infrastructure
dependencies. Input schemas (Create / Update / Search) live next to the read
model they produce; import them from their module.
"""

from .actor import Actor
from .advertising import AdPricingCatalog, AdSlotReservation
from .base import AuditedEntity, CountResult, Page, SearchParams
from .billing import CreditNote, Invoice, InvoiceLine, Payment, PricingPlan, Subscription
from .catalog import (
    Accommodation,
    AccommodationWithRelations,
    Destination,
    DestinationWithRelations,
    EntityTag,
    Event,
    EventOrganizer,
    EventWithRelations,
    Tag,
)
from .discount import DiscountCode, DiscountCodeUsage
from .enums import (
    AccommodationType,
    BillingInterval,
    CampaignChannel,
    CreditNoteStatus,
    DiscountType,
    EventCategory,
    InvoiceStatus,
    LifecycleStatus,
    ModerationStatus,
    PaymentStatus,
    Permission,
    PricingModel,
    ReservationStatus,
    RoleName,
    SubscriptionStatus,
    TaggableEntity,
    Visibility,
)
from .promotion import Promotion, PromotionApplication, Purchase

__all__ = [
    # Shared
    "Actor",
    "AuditedEntity",
    "CountResult",
    "Page",
    "SearchParams",
    # Catalog
    "Accommodation",
    "AccommodationWithRelations",
    "Destination",
    "DestinationWithRelations",
    "EntityTag",
    "Event",
    "EventOrganizer",
    "EventWithRelations",
    "Tag",
    # Billing
    "CreditNote",
    "Invoice",
    "InvoiceLine",
    "Payment",
    "PricingPlan",
    "Subscription",
    # Promotions
    "Promotion",
    "PromotionApplication",
    "DiscountCode",
    "DiscountCodeUsage",
    "Purchase",
    # Advertising
    "AdPricingCatalog",
    "AdSlotReservation",
    # Enums
    "AccommodationType",
    "BillingInterval",
    "CampaignChannel",
    "CreditNoteStatus",
    "DiscountType",
    "EventCategory",
    "InvoiceStatus",
    "LifecycleStatus",
    "ModerationStatus",
    "PaymentStatus",
    "Permission",
    "PricingModel",
    "ReservationStatus",
    "RoleName",
    "SubscriptionStatus",
    "TaggableEntity",
    "Visibility",
]
