from __future__ import annotations

import logging
import time

from fastapi.routing import APIRoute
from starlette.requests import Request

from drivedesk.config import settings
from drivedesk.request_context import current_endpoint


logger = logging.getLogger('drivedesk.request')


class EndpointNameRoute(APIRoute):
    """Tags each request with ``METHOD /route/template`` and logs the slow ones.

    The label is what the slow-query listener in ``drivedesk.db`` reports, so a
    slow SQL statement can be traced back to the endpoint that issued it.
    """

    def get_route_handler(self):
        original_handler = super().get_route_handler()

        async def custom_handler(request: Request):
            endpoint_label = f"{request.method} {self.path}"
            token = current_endpoint.set(endpoint_label)
            started = time.perf_counter()
            status_code = 500
            try:
                response = await original_handler(request)
                status_code = response.status_code
                return response
            finally:
                current_endpoint.reset(token)
                duration_ms = (time.perf_counter() - started) * 1000.0
                if duration_ms >= settings.metrics_slow_ms:
                    logger.info(
                        'request_slow endpoint=%s status_code=%s duration_ms=%.2f',
                        endpoint_label,
                        status_code,
                        duration_ms,
                    )

        return custom_handler
