"""
Compile wire endpoints into FastAPI routes.

Every exposure becomes one route function:

    async def route(req: RequestModel, <path params>) -> ResponseModel:
        return ResponseModel.from_domain(await runner.run(req.to_domain(**path)))

GET requests read the model from the query string. Path parameter types
come from the annotations of the request model's to_domain().
"""

import inspect
import re
from typing import Annotated, Any, get_type_hints

import fastapi
from kungfu import Result

from vitrine.ops import Runner
from vitrine.wire._endpoint import Application, Endpoint
from vitrine.wire._types import HTTPRouteTrigger, RequestResponseCodec

_PATH_PARAM = re.compile(r"{(\w+)}")


def path_params(path: str) -> list[str]:
    return _PATH_PARAM.findall(path)


def _param_types(req_cls: type[Any], names: list[str]) -> dict[str, Any]:
    hints = get_type_hints(req_cls.to_domain) if names else {}
    return {name: hints.get(name, str) for name in names}


def make_route(
    trigger: HTTPRouteTrigger,
    codec: RequestResponseCodec,
    runner: Runner,
) -> Any:
    req_cls: Any = codec.request
    resp_cls: Any = codec.response
    names = path_params(trigger.path)

    async def _route_handler(req: Any, **path: Any) -> Any:
        result: Result[Any, Any] = await runner.run(req.to_domain(**path))
        return resp_cls.from_domain(result)

    if trigger.method == "GET":
        req_annotation: Any = Annotated[req_cls, fastapi.Query()]
    else:
        req_annotation = req_cls

    params = [inspect.Parameter("req", inspect.Parameter.KEYWORD_ONLY, annotation=req_annotation)]
    params += [
        inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, annotation=typ)
        for name, typ in _param_types(req_cls, names).items()
    ]
    _route_handler.__signature__ = inspect.Signature(params, return_annotation=resp_cls)  # type: ignore[attr-defined]
    _route_handler.__name__ = f"{trigger.method.lower()}_{req_cls.__name__}"
    return _route_handler


def add_endpoint_to_app(app: fastapi.FastAPI, endp: Endpoint) -> None:
    for trigger, codec in endp.exposures:
        app.add_api_route(
            trigger.path,
            make_route(trigger, codec, endp.runner),
            methods=[trigger.method],
            status_code=trigger.status_code,
            response_model=codec.response,
            tags=list(trigger.tags) or None,
        )


def from_application(app: Application) -> fastapi.FastAPI:
    f_app = fastapi.FastAPI(title=app.title)
    for endp in app.endpoints:
        add_endpoint_to_app(f_app, endp)
    return f_app


__all__ = (
    "path_params",
    "make_route",
    "add_endpoint_to_app",
    "from_application",
)
