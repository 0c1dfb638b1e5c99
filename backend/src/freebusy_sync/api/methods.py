# API endpoint handlers for the free/busy lookup service

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Awaitable, Callable

from starlette import status
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from freebusy_sync.core.errors import FreeBusyError
from freebusy_sync.core.models import ExchangeUser

from .request import GCalFreeBusyRequest
from .response import generate_error_response, generate_response

logger = logging.getLogger(__name__)


# ============================================================================
# REQUEST UTILITIES
# ============================================================================


def default_directory_lookup(emails: list[str]) -> list[ExchangeUser]:
    users = []
    for email in emails:
        name = email.split("@", 1)[0]
        users.append(ExchangeUser(email=email, display_name=name, common_name=name))
    return users


def resolve_users(request: Request, emails: list[str]) -> list[ExchangeUser]:
    """Resolve requested addresses through the configured directory, if any."""
    directory = getattr(request.app.state, "directory", None)
    if directory is None:
        return default_directory_lookup(emails)
    return list(directory.find_users(emails))


def lookup_handler(
    handler: Callable[[Request], Awaitable[Response]]
) -> Callable[[Request], Awaitable[Response]]:
    """
    Decorator that converts lookup failures into protocol error responses.

    The lookup protocol reports errors in the response body, so every
    response is sent with status 200.
    """

    @wraps(handler)
    async def wrapper(request: Request) -> Response:
        try:
            return await handler(request)
        except FreeBusyError as e:
            logger.warning("Free/busy lookup failed: %s", e.message)
            parsed = getattr(request.state, "lookup_request", None)
            return PlainTextResponse(generate_error_response(e, parsed))
        except Exception as e:
            logger.exception("Unhandled exception in free/busy lookup: %s", e)
            parsed = getattr(request.state, "lookup_request", None)
            return PlainTextResponse(generate_error_response(e, parsed))

    return wrapper


# ============================================================================
# LOOKUP ENDPOINTS
# ============================================================================


@lookup_handler
async def freebusy_lookup(request: Request) -> Response:
    """
    POST /freebusy

    Body: raw lookup request, e.g.
        [1, msg-id, [a@example.com,b@example.com], 20080101/20080131, 20080101T000000, America/Los_Angeles]
    """
    config = request.app.state.config
    gateway = request.app.state.gateway

    body = (await request.body()).decode("utf-8", errors="replace")
    lookup = GCalFreeBusyRequest.parse(body, config.domain_map)
    request.state.lookup_request = lookup

    users = resolve_users(request, lookup.users)
    await run_in_threadpool(
        gateway.get_calendar_info_for_users, users, lookup.utc_range
    )

    return PlainTextResponse(generate_response(lookup, users, config.domain_map))


async def sync_state_get(request: Request) -> JSONResponse:
    """
    GET /syncState/{email}

    Returns the stored synchronization state for a user.
    """
    store = getattr(request.app.state, "sync_state", None)
    email = request.path_params["email"]
    state = store.get_sync_state(email) if store is not None else None

    if state is None:
        content: dict[str, Any] = {
            "error": {
                "code": status.HTTP_404_NOT_FOUND,
                "message": f"No sync state for {email}",
            }
        }
        return JSONResponse(content, status_code=status.HTTP_404_NOT_FOUND)

    return JSONResponse(state.model_dump(mode="json"))


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


routes = [
    Route("/freebusy", freebusy_lookup, methods=["POST"]),
    Route("/syncState/{email}", sync_state_get, methods=["GET"]),
    Route("/health", health, methods=["GET"]),
]
