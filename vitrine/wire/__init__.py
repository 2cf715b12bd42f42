"""
Wire — expose ops over HTTP.

    from vitrine import wire as W

    endp = W.endpoint(runner).expose(
        W.HTTPRouteTrigger("GET", "/products/{product_id}"),
        W.RequestResponseCodec(ProductRequest, ProductResponse),
    )
    fastapi_app = W.from_application(W.application().mount(endp))
"""

from vitrine.wire._types import (
    Method,
    ToDomain,
    FromDomain,
    HTTPRouteTrigger,
    RequestResponseCodec,
    Exposure,
)
from vitrine.wire._endpoint import (
    Endpoint,
    endpoint,
    Application,
    application,
)
from vitrine.wire._fastapi import (
    path_params,
    make_route,
    add_endpoint_to_app,
    from_application,
)

__all__ = (
    # Types
    "Method",
    "ToDomain",
    "FromDomain",
    "HTTPRouteTrigger",
    "RequestResponseCodec",
    "Exposure",
    # Endpoints
    "Endpoint",
    "endpoint",
    "Application",
    "application",
    # FastAPI
    "path_params",
    "make_route",
    "add_endpoint_to_app",
    "from_application",
)
