"""Import all models so Base.metadata knows every table."""
from tenant_messaging.infrastructure.db.models.message import MessageModel
from tenant_messaging.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "UserModel",
]
