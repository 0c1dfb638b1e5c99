# Lookup API for the free/busy service
from .methods import (
    routes,
    freebusy_lookup,
    sync_state_get,
    health,
    lookup_handler,
    resolve_users,
)
from .request import GCalFreeBusyRequest
from .response import generate_error_response, generate_response

__all__ = [
    "routes",
    "freebusy_lookup",
    "sync_state_get",
    "health",
    "lookup_handler",
    "resolve_users",
    "GCalFreeBusyRequest",
    "generate_error_response",
    "generate_response",
]
