from __future__ import annotations

from fastapi.routing import APIRoute
from starlette.requests import Request

from precalc.request_context import current_endpoint


class EndpointNameRoute(APIRoute):
    """Labels the request context with the route template, e.g. ``GET /api/pacing/{student_id}``."""

    def get_route_handler(self):
        handler = super().get_route_handler()
        label = f"{','.join(sorted(self.methods or ()))} {self.path}"

        async def labelled_handler(request: Request):
            token = current_endpoint.set(label)
            try:
                return await handler(request)
            finally:
                current_endpoint.reset(token)

        return labelled_handler
