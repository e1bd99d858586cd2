from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    LANDLORD = "LANDLORD"
    TENANT = "TENANT"
    CONTRACTOR = "CONTRACTOR"
    ADMIN = "ADMIN"
