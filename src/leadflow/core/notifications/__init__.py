from src.leadflow.core.notifications.email import (
    MessageDispatcher,
    OutboundMessage,
    ResendDispatcher,
)

__all__ = ["MessageDispatcher", "OutboundMessage", "ResendDispatcher"]
