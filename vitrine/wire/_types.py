"""
Wire types — how an Op is triggered and how its payloads are coded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Protocol, TypeVar

from kungfu import Result

if TYPE_CHECKING:
    from vitrine.ops import Op

DomainT_co = TypeVar("DomainT_co", covariant=True)
DomainT_contra = TypeVar("DomainT_contra", contravariant=True)

type Method = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


class ToDomain(Protocol[DomainT_co]):
    """Request payload; path parameters arrive as keyword arguments."""

    def to_domain(self, **path: Any) -> DomainT_co: ...


class FromDomain(Protocol[DomainT_contra]):
    """Response payload; raises fastapi.HTTPException for an Error."""

    @classmethod
    def from_domain(cls, dom: DomainT_contra) -> FromDomain[DomainT_contra]: ...


@dataclass(frozen=True, slots=True)
class HTTPRouteTrigger:
    method: Method
    path: str
    status_code: int = 200
    tags: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class RequestResponseCodec:
    request: type[ToDomain[Op[Any, Any]]]
    response: type[FromDomain[Result[Any, Any]]]


type Exposure = tuple[HTTPRouteTrigger, RequestResponseCodec]


__all__ = (
    "Method",
    "ToDomain",
    "FromDomain",
    "HTTPRouteTrigger",
    "RequestResponseCodec",
    "Exposure",
)
