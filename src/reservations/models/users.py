from enum import Enum


class UserRole(Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    CUSTOMER = "CUSTOMER"


HOTEL_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF})
