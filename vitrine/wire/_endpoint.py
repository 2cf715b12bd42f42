from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

from vitrine.ops import Runner
from vitrine.wire._types import Exposure, HTTPRouteTrigger, RequestResponseCodec


@dataclass(slots=True)
class Endpoint:
    runner: Runner
    exposures: list[Exposure] = field(default_factory=list[Exposure])

    def expose(self, trigger: HTTPRouteTrigger, codec: RequestResponseCodec) -> Endpoint:
        return Endpoint(runner=self.runner, exposures=[*self.exposures, (trigger, codec)])


def endpoint(runner: Runner) -> Endpoint:
    return Endpoint(runner=runner)


class Application:
    def __init__(self, title: str = "vitrine") -> None:
        self.title = title
        self.endpoints: list[Endpoint] = []

    def mount(self, *endps: Endpoint) -> Self:
        self.endpoints.extend(endps)
        return self


def application(title: str = "vitrine") -> Application:
    return Application(title)


__all__ = ("Endpoint", "endpoint", "Application", "application")
