class OrderhookError(Exception):
    """Base exception for Orderhook."""

    pass


class WebhookVerificationError(OrderhookError):
    """Raised when an inbound envelope fails signature or shape checks."""

    pass


class ProcessorError(OrderhookError):
    """Raised when a payment processor API call fails."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Processor call '{operation}' failed: {cause}")


class EmailDeliveryError(OrderhookError):
    """Raised when the email provider rejects or cannot accept a message."""

    def __init__(self, subject: str, reason: str):
        self.subject = subject
        self.reason = reason
        super().__init__(f"Email '{subject}' not delivered: {reason}")


class ReceiptRenderError(OrderhookError):
    """Raised when the receipt PDF cannot be rendered."""

    pass
