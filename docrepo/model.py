"""
Defines the transport-level types shared by the adapter and the cache stores.

These types are as simple as possible in order to most conveniently consume and
produce instances of them. Results handed to callers live in `results`; these
are the raw snapshots those results are built from.
"""

from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from requests.structures import CaseInsensitiveDict


@dataclass(frozen=True)
class Request:
    """
    Represents an outgoing GET request, excluding parts the host already fixes.
    """

    uri: str
    """
    The path of the resource being requested. E.g., "/org/repo/master/docs/a.md".
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    """
    The extra headers sent with the request.
    """

    method: str = 'GET'


@dataclass(frozen=True)
class Response:
    """
    An immutable snapshot of an HTTP response.

    This is what cache stores hold. Headers are case-insensitive, and the body
    is fully read so that a snapshot can be replayed any number of times.
    """

    status: int
    """
    The status code of the response. E.g., 200 or 404.
    """

    reason: Optional[str]
    """
    The reason string, which relates to the status code.
    """

    headers: Mapping[str, str]
    """
    All the headers sent with the response.
    """

    body: bytes = b''
    """
    The complete response payload.
    """

    def __post_init__(self):
        object.__setattr__(self, 'headers', CaseInsensitiveDict(self.headers or {}))


def merge_headers(response: Response, headers: Mapping[str, str]) -> Response:
    """
    Overlay `headers` onto a copy of `response`, keeping its status and body.

    Used when a revalidation answers 304: the fresh headers win, everything
    else the origin did not resend is preserved.
    """
    merged = CaseInsensitiveDict(response.headers)
    merged.update(headers)
    return replace(response, headers=merged)
