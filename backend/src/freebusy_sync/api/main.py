from os import environ
from typing import Any, Optional

from starlette.applications import Starlette
from starlette.routing import Router

from freebusy_sync.api.methods import routes as lookup_routes
from freebusy_sync.config import SyncConfig
from freebusy_sync.database.session import SessionManager
from freebusy_sync.database.typed_operations import SyncStateStore
from freebusy_sync.engine.gateway import ExchangeGateway
from freebusy_sync.logging_config import setup_logging

setup_logging()


def create_app(
    appointments: Any = None,
    free_busy: Any = None,
    config: Optional[SyncConfig] = None,
    directory: Any = None,
    sessions: Optional[SessionManager] = None,
) -> Starlette:
    """
    Build the lookup application.

    ``appointments`` and ``free_busy`` are the store services wrapped by the
    ExchangeGateway; ``directory`` optionally resolves addresses to users.
    """
    app = Starlette()
    config = config or SyncConfig.from_environ(environ)

    if sessions is None:
        sessions = SessionManager.from_url(config.database_url)
    sessions.create_tables()

    app.state.config = config
    app.state.sessions = sessions
    app.state.sync_state = SyncStateStore(sessions)
    app.state.directory = directory
    app.state.gateway = ExchangeGateway(
        appointments,
        free_busy,
        enable_appointment_lookup=config.enable_appointment_lookup,
        raster_interval_minutes=(
            config.raster_interval_minutes if config.raster_lookup else None
        ),
    )

    app.mount("/api", Router(lookup_routes))

    return app
