from __future__ import annotations

from dataclasses import dataclass

from tenant_messaging.domain.value_objects.enums import UserRole


@dataclass(frozen=True, slots=True)
class Party:
    id: str
    name: str | None
    email: str | None
    role: UserRole | None = None

    @property
    def display_name(self) -> str:
        name = self.name or self.email or self.id
        if self.role == UserRole.LANDLORD:
            return f"{name} (Landlord)"
        return name
