"""Domain services package."""

from .advertising import AdPricingCatalogService, AdSlotReservationService
from .base import BaseCrudService, LifecycleHooks, ServiceErrorInfo, ServiceOutput
from .billing import CreditNoteService, InvoiceService, SubscriptionService
from .catalog import AccommodationService, DestinationService, EventService, TagService
from .promotions import DiscountCodeService, PromotionService

__all__ = [
    "BaseCrudService",
    "LifecycleHooks",
    "ServiceErrorInfo",
    "ServiceOutput",
    "DestinationService",
    "AccommodationService",
    "TagService",
    "EventService",
    "SubscriptionService",
    "InvoiceService",
    "CreditNoteService",
    "PromotionService",
    "DiscountCodeService",
    "AdPricingCatalogService",
    "AdSlotReservationService",
]
