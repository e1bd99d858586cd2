from __future__ import annotations

from tenant_messaging.domain.entities.message import Message, MessageView
from tenant_messaging.domain.entities.party import Party
from tenant_messaging.domain.value_objects.enums import UserRole
from tenant_messaging.infrastructure.db.models.message import MessageModel
from tenant_messaging.infrastructure.db.models.user import UserModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.from_id,
        recipient_id=model.to_id,
        subject=model.subject,
        body=model.body,
        read=model.read,
        created_at=model.created_at,
    )


def user_to_party(model: UserModel | None) -> Party | None:
    if model is None:
        return None
    role = UserRole(model.role) if model.role in UserRole.__members__.values() else None
    return Party(id=model.id, name=model.name, email=model.email, role=role)


def model_to_view(model: MessageModel) -> MessageView:
    return MessageView(
        message=model_to_entity(model),
        sender=user_to_party(model.sender),
        recipient=user_to_party(model.recipient),
    )
