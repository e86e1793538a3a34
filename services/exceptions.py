# services/exceptions.py
from typing import Any, Dict, Optional


class ChatBackendError(Exception):
    """Base exception for the chat backend."""

    title = "Internal Server Error"

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ChatBackendError):
    """Raised when input validation fails."""

    title = "Validation Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(ChatBackendError):
    """Raised when a resource is not found."""

    title = "Not Found"

    def __init__(self, resource: str, identifier: str):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(message, "NOT_FOUND", {"resource": resource, "identifier": identifier})


class ConversationNotFoundError(NotFoundError):
    title = "Conversation not found"

    def __init__(self, conversation_id: str):
        super().__init__("Conversation", conversation_id)


class MessageNotFoundError(NotFoundError):
    title = "Message not found in this conversation"

    def __init__(self, conversation_id: str, message_id: str):
        super().__init__("Message", message_id)
        self.details["conversation_id"] = conversation_id


class GatewayError(ChatBackendError):
    """Raised when the generation API call fails or its answer cannot be read."""

    title = "Error contacting generation API"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Generation service error: {message}", "GATEWAY_ERROR", details)


class StoreError(ChatBackendError):
    """Raised when document store operations fail."""

    title = "Error accessing message store"

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}", "STORE_ERROR", {"operation": operation})


class ConflictError(ChatBackendError):
    """Raised when a conversation kept changing underneath a write."""

    title = "Conversation was modified concurrently"

    def __init__(self, conversation_id: str, attempts: int):
        super().__init__(
            f"Conversation '{conversation_id}' changed during {attempts} write attempts",
            "CONFLICT",
            {"conversation_id": conversation_id, "attempts": attempts},
        )


class PersistenceAfterGenerationError(ChatBackendError):
    """
    The generation API answered but the exchange could not be stored.
    The reply is kept on the exception so callers can still use it.
    """

    title = "Reply generated but not saved"

    def __init__(self, reply: str, cause: ChatBackendError):
        super().__init__(
            f"Reply was generated but could not be saved: {cause.message}",
            "PERSISTENCE_AFTER_GENERATION",
            {"cause": cause.error_code},
        )
        self.reply = reply
        self.cause = cause
