"""Concrete SQLAlchemy repository implementations.

Exports every SqlRepository class and the get_repositories() factory used to
wire them at the application boundary.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from .advertising import SqlAdPricingCatalogRepository, SqlAdSlotReservationRepository
from .base import InsertFailedError, SqlRepository
from .billing import (
    SqlCreditNoteRepository,
    SqlInvoiceLineRepository,
    SqlInvoiceRepository,
    SqlPaymentRepository,
    SqlPricingPlanRepository,
    SqlSubscriptionRepository,
)
from .catalog import (
    SqlAccommodationRepository,
    SqlDestinationRepository,
    SqlEventOrganizerRepository,
    SqlEventRepository,
    SqlTagRepository,
)
from .promotions import (
    SqlDiscountCodeRepository,
    SqlDiscountCodeUsageRepository,
    SqlPromotionRepository,
)


@dataclass
class Repositories:
    """All repository instances bound to a single engine."""

    destinations: SqlDestinationRepository
    accommodations: SqlAccommodationRepository
    tags: SqlTagRepository
    event_organizers: SqlEventOrganizerRepository
    events: SqlEventRepository
    pricing_plans: SqlPricingPlanRepository
    subscriptions: SqlSubscriptionRepository
    invoices: SqlInvoiceRepository
    invoice_lines: SqlInvoiceLineRepository
    payments: SqlPaymentRepository
    credit_notes: SqlCreditNoteRepository
    promotions: SqlPromotionRepository
    discount_codes: SqlDiscountCodeRepository
    discount_code_usages: SqlDiscountCodeUsageRepository
    ad_pricing_catalogs: SqlAdPricingCatalogRepository
    ad_slot_reservations: SqlAdSlotReservationRepository


def get_repositories(db: AsyncEngine) -> Repositories:
    """Construct all repositories bound to the given engine.

        repos = get_repositories(engine)
        page = await repos.accommodations.find_all({}, page=1, page_size=20)
    """
    return Repositories(
        destinations=SqlDestinationRepository(db),
        accommodations=SqlAccommodationRepository(db),
        tags=SqlTagRepository(db),
        event_organizers=SqlEventOrganizerRepository(db),
        events=SqlEventRepository(db),
        pricing_plans=SqlPricingPlanRepository(db),
        subscriptions=SqlSubscriptionRepository(db),
        invoices=SqlInvoiceRepository(db),
        invoice_lines=SqlInvoiceLineRepository(db),
        payments=SqlPaymentRepository(db),
        credit_notes=SqlCreditNoteRepository(db),
        promotions=SqlPromotionRepository(db),
        discount_codes=SqlDiscountCodeRepository(db),
        discount_code_usages=SqlDiscountCodeUsageRepository(db),
        ad_pricing_catalogs=SqlAdPricingCatalogRepository(db),
        ad_slot_reservations=SqlAdSlotReservationRepository(db),
    )


__all__ = [
    "SqlRepository",
    "InsertFailedError",
    "SqlDestinationRepository",
    "SqlAccommodationRepository",
    "SqlTagRepository",
    "SqlEventOrganizerRepository",
    "SqlEventRepository",
    "SqlPricingPlanRepository",
    "SqlSubscriptionRepository",
    "SqlInvoiceRepository",
    "SqlInvoiceLineRepository",
    "SqlPaymentRepository",
    "SqlCreditNoteRepository",
    "SqlPromotionRepository",
    "SqlDiscountCodeRepository",
    "SqlDiscountCodeUsageRepository",
    "SqlAdPricingCatalogRepository",
    "SqlAdSlotReservationRepository",
    "Repositories",
    "get_repositories",
]
