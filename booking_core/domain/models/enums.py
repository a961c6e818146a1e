"""Domain enumerations for the booking platform.

All string-valued enums use the str mixin so they serialize cleanly to JSON
and compare equal to the plain strings stored in the database.

The two status enums that behave as state machines (SubscriptionStatus and
ReservationStatus) carry their transition allow-list on the enum itself.
"""

from __future__ import annotations

from enum import Enum


class LifecycleStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class Visibility(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    DRAFT = "DRAFT"


class ModerationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AccommodationType(str, Enum):
    HOTEL = "HOTEL"
    HOSTEL = "HOSTEL"
    CABIN = "CABIN"
    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    CAMPING = "CAMPING"
    ROOM = "ROOM"


class EventCategory(str, Enum):
    MUSIC = "MUSIC"
    CULTURE = "CULTURE"
    SPORTS = "SPORTS"
    GASTRONOMY = "GASTRONOMY"
    FESTIVAL = "FESTIVAL"
    NATURE = "NATURE"
    OTHER = "OTHER"


class TaggableEntity(str, Enum):
    ACCOMMODATION = "ACCOMMODATION"
    DESTINATION = "DESTINATION"
    EVENT = "EVENT"


class BillingInterval(str, Enum):
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"


class SubscriptionStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    def can_transition_to(self, target: SubscriptionStatus) -> bool:
        """True when moving from this status to *target* is allowed."""
        return target in _SUBSCRIPTION_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _SUBSCRIPTION_TRANSITIONS[self]


_SUBSCRIPTION_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    SubscriptionStatus.PENDING: frozenset({SubscriptionStatus.ACTIVE}),
    SubscriptionStatus.ACTIVE: frozenset(
        {
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.CANCELLED,
            SubscriptionStatus.EXPIRED,
            SubscriptionStatus.PAUSED,
        }
    ),
    SubscriptionStatus.PAST_DUE: frozenset(
        {
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.CANCELLED,
            SubscriptionStatus.EXPIRED,
        }
    ),
    SubscriptionStatus.PAUSED: frozenset(
        {
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.CANCELLED,
            SubscriptionStatus.EXPIRED,
        }
    ),
    SubscriptionStatus.CANCELLED: frozenset(),
    SubscriptionStatus.EXPIRED: frozenset(),
}


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    PAID = "PAID"
    VOID = "VOID"
    UNCOLLECTIBLE = "UNCOLLECTIBLE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class CreditNoteStatus(str, Enum):
    ISSUED = "ISSUED"
    APPLIED = "APPLIED"
    CANCELLED = "CANCELLED"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class PricingModel(str, Enum):
    CPM = "CPM"  # cost per thousand impressions
    CPC = "CPC"  # cost per click
    FLAT = "FLAT"


class CampaignChannel(str, Enum):
    WEB = "WEB"
    SOCIAL = "SOCIAL"
    EMAIL = "EMAIL"
    NEWSLETTER = "NEWSLETTER"


class ReservationStatus(str, Enum):
    RESERVED = "RESERVED"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    ENDED = "ENDED"

    def can_transition_to(self, target: ReservationStatus) -> bool:
        """True when moving from this status to *target* is allowed."""
        return target in _RESERVATION_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _RESERVATION_TRANSITIONS[self]


_RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.RESERVED: frozenset(
        {ReservationStatus.ACTIVE, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.ACTIVE: frozenset(
        {ReservationStatus.PAUSED, ReservationStatus.CANCELLED, ReservationStatus.ENDED}
    ),
    ReservationStatus.PAUSED: frozenset(
        {ReservationStatus.ACTIVE, ReservationStatus.CANCELLED, ReservationStatus.ENDED}
    ),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.ENDED: frozenset(),
}


class RoleName(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    HOST = "HOST"
    CLIENT = "CLIENT"
    USER = "USER"
    GUEST = "GUEST"


class Permission(str, Enum):
    DESTINATION_CREATE = "destination.create"
    DESTINATION_UPDATE = "destination.update"
    DESTINATION_DELETE = "destination.delete"
    DESTINATION_RESTORE = "destination.restore"
    DESTINATION_HARD_DELETE = "destination.hardDelete"
    DESTINATION_VIEW_ALL = "destination.viewAll"

    ACCOMMODATION_CREATE = "accommodation.create"
    ACCOMMODATION_UPDATE_ANY = "accommodation.update.any"
    ACCOMMODATION_UPDATE_OWN = "accommodation.update.own"
    ACCOMMODATION_DELETE_ANY = "accommodation.delete.any"
    ACCOMMODATION_DELETE_OWN = "accommodation.delete.own"
    ACCOMMODATION_RESTORE = "accommodation.restore"
    ACCOMMODATION_HARD_DELETE = "accommodation.hardDelete"
    ACCOMMODATION_VIEW_ALL = "accommodation.viewAll"

    TAG_CREATE = "tag.create"
    TAG_UPDATE = "tag.update"
    TAG_DELETE = "tag.delete"
    TAG_RESTORE = "tag.restore"
    TAG_HARD_DELETE = "tag.hardDelete"
    TAG_ASSIGN = "tag.assign"

    EVENT_CREATE = "event.create"
    EVENT_UPDATE_ANY = "event.update.any"
    EVENT_UPDATE_OWN = "event.update.own"
    EVENT_DELETE_ANY = "event.delete.any"
    EVENT_DELETE_OWN = "event.delete.own"
    EVENT_RESTORE = "event.restore"
    EVENT_HARD_DELETE = "event.hardDelete"
    EVENT_VIEW_ALL = "event.viewAll"

    SUBSCRIPTION_CREATE = "subscription.create"
    SUBSCRIPTION_UPDATE = "subscription.update"
    SUBSCRIPTION_DELETE = "subscription.delete"
    SUBSCRIPTION_RESTORE = "subscription.restore"
    SUBSCRIPTION_HARD_DELETE = "subscription.hardDelete"
    SUBSCRIPTION_VIEW_ALL = "subscription.viewAll"

    INVOICE_CREATE = "invoice.create"
    INVOICE_UPDATE = "invoice.update"
    INVOICE_DELETE = "invoice.delete"
    INVOICE_RESTORE = "invoice.restore"
    INVOICE_HARD_DELETE = "invoice.hardDelete"
    INVOICE_VIEW_ALL = "invoice.viewAll"

    CREDIT_NOTE_CREATE = "creditNote.create"
    CREDIT_NOTE_UPDATE = "creditNote.update"
    CREDIT_NOTE_DELETE = "creditNote.delete"
    CREDIT_NOTE_RESTORE = "creditNote.restore"
    CREDIT_NOTE_HARD_DELETE = "creditNote.hardDelete"
    CREDIT_NOTE_VIEW_ALL = "creditNote.viewAll"

    PROMOTION_CREATE = "promotion.create"
    PROMOTION_UPDATE = "promotion.update"
    PROMOTION_DELETE = "promotion.delete"
    PROMOTION_RESTORE = "promotion.restore"
    PROMOTION_HARD_DELETE = "promotion.hardDelete"
    PROMOTION_APPLY = "promotion.apply"

    DISCOUNT_CODE_CREATE = "discountCode.create"
    DISCOUNT_CODE_UPDATE = "discountCode.update"
    DISCOUNT_CODE_DELETE = "discountCode.delete"
    DISCOUNT_CODE_RESTORE = "discountCode.restore"
    DISCOUNT_CODE_HARD_DELETE = "discountCode.hardDelete"
    DISCOUNT_CODE_VIEW_ALL = "discountCode.viewAll"
    DISCOUNT_CODE_APPLY = "discountCode.apply"

    AD_PRICING_CREATE = "adPricing.create"
    AD_PRICING_UPDATE = "adPricing.update"
    AD_PRICING_DELETE = "adPricing.delete"
    AD_PRICING_RESTORE = "adPricing.restore"
    AD_PRICING_HARD_DELETE = "adPricing.hardDelete"

    AD_RESERVATION_CREATE = "adReservation.create"
    AD_RESERVATION_UPDATE = "adReservation.update"
    AD_RESERVATION_DELETE = "adReservation.delete"
    AD_RESERVATION_RESTORE = "adReservation.restore"
    AD_RESERVATION_HARD_DELETE = "adReservation.hardDelete"
    AD_RESERVATION_MANAGE_STATUS = "adReservation.manageStatus"
