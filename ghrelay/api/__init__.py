"""ghrelay HTTP API layer.

This package provides the Falcon ASGI application serving health probes
and the GitHub webhook endpoint, plus the lifespan middleware that starts
and stops the relay's background tasks.

Usage
-----
Create the application::

    from ghrelay.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # webhook route and lifespan wiring
"""

from ghrelay.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
