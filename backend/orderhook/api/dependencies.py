from fastapi import Request

from orderhook.webhooks.context import WebhookServices


def get_services(request: Request) -> WebhookServices:
    """Collaborators built in the app lifespan."""
    return request.app.state.services
