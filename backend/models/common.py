from enum import Enum


class ParcelType(str, Enum):
    DOCUMENT     = "document"
    NON_DOCUMENT = "non-document"


class DeliveryStatus(str, Enum):
    NOT_COLLECTED  = "not_collected"
    RIDER_ASSIGNED = "rider_assigned"
    IN_TRANSIT     = "in_transit"
    DELIVERED      = "delivered"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID   = "paid"


class CashOutStatus(str, Enum):
    PENDING = "pending"
    PAID    = "paid"


class TrackingStatus(str, Enum):
    PARCEL_CREATED    = "parcel_created"
    PAYMENT_COMPLETED = "payment_completed"
    RIDER_ASSIGNED    = "rider_assigned"
    IN_TRANSIT        = "in_transit"
    DELIVERED         = "delivered"


class UserRole(str, Enum):
    USER  = "user"
    RIDER = "rider"
    ADMIN = "admin"


class ApplicationStatus(str, Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WorkStatus(str, Enum):
    IDLE        = "idle"
    IN_DELIVERY = "in_delivery"   # set by assignment only
    BUSY        = "busy"
    ON_BREAK    = "on_break"


# Statuses a rider may set on their own
SELF_SERVICE_WORK_STATUSES = {WorkStatus.IDLE, WorkStatus.BUSY, WorkStatus.ON_BREAK}

# Delivery statuses that require an assigned rider
RIDER_BOUND_STATUSES = {
    DeliveryStatus.RIDER_ASSIGNED,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
}

PENDING_DELIVERY_STATUSES   = [DeliveryStatus.RIDER_ASSIGNED.value, DeliveryStatus.IN_TRANSIT.value]
COMPLETED_DELIVERY_STATUSES = [DeliveryStatus.DELIVERED.value]
