"""Falcon ASGI application for the relay's HTTP surface.

Probes are always mounted. The GitHub webhook endpoint is mounted under
both ``/webhook`` and ``/webhook/github`` only when an ingestor is wired in,
so a polling-only deployment answers deliveries with 404::

    from ghrelay.api.app import AppDependencies, create_app

    app = create_app(AppDependencies(ingestor=ingestor, lifespan=lifespan))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from ghrelay.api.errors import (
    handle_webhook_payload_error,
    handle_webhook_signature_error,
)
from ghrelay.api.health.resources import HealthResource, ReadyResource
from ghrelay.webhook import WebhookPayloadError, WebhookSignatureError

if typ.TYPE_CHECKING:
    from ghrelay.api.lifespan import RelayLifespan
    from ghrelay.webhook import WebhookIngestor

__all__ = ["WEBHOOK_ROUTES", "AppDependencies", "create_app"]

WEBHOOK_ROUTES = ("/webhook", "/webhook/github")


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Collaborators wired into the application.

    Attributes
    ----------
    ingestor
        Webhook ingestor. When ``None`` the webhook routes are not
        registered and deliveries receive Falcon's 404.
    lifespan
        Middleware running the relay's background tasks. When present,
        ``/ready`` reports its readiness.

    """

    ingestor: WebhookIngestor | None = None
    lifespan: RelayLifespan | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Build the relay application from ``dependencies``.

    The lifespan middleware, when given, runs first so background tasks
    start before the first request and ``/ready`` tracks its state.
    """
    deps = dependencies or AppDependencies()
    middleware: list[object] = []
    if deps.lifespan is not None:
        middleware.append(deps.lifespan)

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    lifespan = deps.lifespan
    app.add_route("/health", HealthResource())
    app.add_route(
        "/ready",
        ReadyResource(None if lifespan is None else lambda: lifespan.ready),
    )

    if deps.ingestor is not None:
        from ghrelay.api.webhook.resources import WebhookResource

        resource = WebhookResource(deps.ingestor)
        for route in WEBHOOK_ROUTES:
            app.add_route(route, resource)

    app.add_error_handler(WebhookSignatureError, handle_webhook_signature_error)
    app.add_error_handler(WebhookPayloadError, handle_webhook_payload_error)

    return app
