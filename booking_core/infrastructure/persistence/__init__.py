"""Persistence package.

Importing this package registers every ORM mapper with Base.metadata
(required for Alembic autogenerate and create_all) and exports the
repository implementations and the DI factory.
"""

from booking_core.infrastructure.persistence.models import *  # noqa: F401, F403
from booking_core.infrastructure.persistence.models import __all__ as _orm_all
from booking_core.infrastructure.persistence.repositories import (
    Repositories,
    SqlAccommodationRepository,
    SqlAdPricingCatalogRepository,
    SqlAdSlotReservationRepository,
    SqlDestinationRepository,
    SqlEventOrganizerRepository,
    SqlEventRepository,
    SqlInvoiceLineRepository,
    SqlInvoiceRepository,
    SqlPaymentRepository,
    SqlPricingPlanRepository,
    SqlPromotionRepository,
    SqlSubscriptionRepository,
    SqlTagRepository,
    get_repositories,
)

__all__ = _orm_all + [
    "Repositories",
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
    "SqlPromotionRepository",
    "SqlAdPricingCatalogRepository",
    "SqlAdSlotReservationRepository",
    "get_repositories",
]
