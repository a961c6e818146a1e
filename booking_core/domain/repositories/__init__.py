"""Domain repository interfaces.

All abstractions are defined here with abc.ABC and @abstractmethod.
The concrete implementations live in booking_core/infrastructure/persistence/
and are wired at the application boundary via dependency injection.

Import from this package rather than individual modules to avoid coupling
services to specific repository module paths.
"""

from .advertising import AdPricingCatalogRepository, AdSlotReservationRepository
from .base import Repository
from .billing import (
    CreditNoteRepository,
    InvoiceLineRepository,
    InvoiceRepository,
    PaymentRepository,
    PricingPlanRepository,
    SubscriptionRepository,
)
from .catalog import (
    AccommodationRepository,
    DestinationRepository,
    EventOrganizerRepository,
    EventRepository,
    TagRepository,
)
from .promotions import (
    DiscountCodeRepository,
    DiscountCodeUsageRepository,
    PromotionRepository,
)

__all__ = [
    "Repository",
    "DestinationRepository",
    "AccommodationRepository",
    "TagRepository",
    "EventOrganizerRepository",
    "EventRepository",
    "PricingPlanRepository",
    "SubscriptionRepository",
    "InvoiceRepository",
    "InvoiceLineRepository",
    "PaymentRepository",
    "CreditNoteRepository",
    "PromotionRepository",
    "DiscountCodeRepository",
    "DiscountCodeUsageRepository",
    "AdPricingCatalogRepository",
    "AdSlotReservationRepository",
]
