import enum


class Role(str, enum.Enum):
    ADMIN = "admin"
    BASE_COMMANDER = "base_commander"
    LOGISTICS_OFFICER = "logistics_officer"
    USER = "user"


class EquipmentCategory(str, enum.Enum):
    WEAPON = "WEAPON"
    VEHICLE = "VEHICLE"
    AMMUNITION = "AMMUNITION"
    EQUIPMENT = "EQUIPMENT"
    OTHER = "OTHER"


class AssetStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    IN_TRANSIT = "IN_TRANSIT"
    MAINTENANCE = "MAINTENANCE"
    EXPENDED = "EXPENDED"


class AssetCondition(str, enum.Enum):
    NEW = "NEW"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    UNSERVICEABLE = "UNSERVICEABLE"


class PurchaseStatus(str, enum.Enum):
    ORDERED = "ORDERED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class TransferStatus(str, enum.Enum):
    INITIATED = "INITIATED"
    IN_TRANSIT = "IN_TRANSIT"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class AssignmentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"
    EXPENDED = "EXPENDED"


class ExpenditureStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ExpenditureReason(str, enum.Enum):
    TRAINING = "TRAINING"
    OPERATION = "OPERATION"
    MAINTENANCE = "MAINTENANCE"
    DISPOSAL = "DISPOSAL"
    OTHER = "OTHER"


def check_in(column: str, enum_cls) -> str:
    """SQL CHECK expression restricting a column to an enum's values."""
    values = ", ".join(f"'{m.value}'" for m in enum_cls)
    return f"{column} IN ({values})"
