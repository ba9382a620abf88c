"""
The outcome of a single retrieval attempt.

Exactly one of `is_success`, `is_redirect` and `is_error` holds for any
result; `is_not_found` only ever refines `is_error`. Results are rebuilt from a
`Response` snapshot on every retrieval and are never cached themselves.
"""

from datetime import datetime
from http import HTTPStatus
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from .converters import render
from .errors import Error
from .model import Response
from .util import parse_http_date


# Synthesized gateway status codes
BAD_GATEWAY = 502
GATEWAY_TIMEOUT = 504
UNKNOWN_ERROR = 520


def status_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return 'Unknown Error'


def _text(response: Response) -> str:
    content_type = response.headers.get('Content-Type') or ''
    encoding = 'utf-8'
    if 'charset' in content_type:
        encoding = get_encoding_from_headers(response.headers) or encoding
    try:
        return response.body.decode(encoding, errors='replace')
    except LookupError:
        return response.body.decode('utf-8', errors='replace')


class HttpResult:
    """
    Shared readers and predicates for every result type.

    Subclasses flip the one predicate that describes them.
    """

    def _init_result(self, uri, code) -> None:
        self.__uri = str(uri)
        self.__code = int(code)

    @property
    def uri(self) -> str:
        return self.__uri

    @property
    def code(self) -> int:
        return self.__code

    @property
    def is_error(self) -> bool:
        return False

    @property
    def is_not_found(self) -> bool:
        return False

    @property
    def is_redirect(self) -> bool:
        return False

    @property
    def is_success(self) -> bool:
        return False


class Doc(HttpResult):
    """
    A successfully retrieved document.
    """

    def __init__(self, uri: str, response: Response) -> None:
        self._init_result(uri, response.status)
        self.__response = response
        self.__etag = response.headers.get('ETag')
        # Not set by the GitHub raw site; kept for origins that do send it.
        self.__last_modified = parse_http_date(response.headers.get('Last-Modified'))

    @property
    def headers(self) -> Mapping[str, str]:
        return MappingProxyType(self.__response.headers)

    @property
    def etag(self) -> Optional[str]:
        return self.__etag

    @property
    def last_modified(self) -> Optional[datetime]:
        return self.__last_modified

    @property
    def body(self) -> bytes:
        return self.__response.body

    @property
    def content(self) -> str:
        return _text(self.__response)

    @property
    def content_type(self) -> Optional[str]:
        return self.__response.headers.get('Content-Type')

    @property
    def is_success(self) -> bool:
        return True

    def to_html(self, converter: Callable[[str], str] = None) -> str:
        """
        Render the document's Markdown content as HTML.

        @param converter
          A callable taking Markdown text and returning HTML. Defaults to
          `converters.render`.
        """
        return (converter or render)(self.content)

    def __repr__(self) -> str:
        return '<Doc {} {}>'.format(self.code, self.uri)


class Redirect(HttpResult):
    """
    A document which lives somewhere else.

    The URI of a redirect is the location to go to, not the path requested.
    """

    def __init__(self, url: str, code: int = 302, headers: Mapping[str, str] = None) -> None:
        self._init_result(url, code)
        self.__headers = MappingProxyType(CaseInsensitiveDict(headers or {}))

    @property
    def url(self) -> str:
        return self.uri

    location = url

    @property
    def headers(self) -> Mapping[str, str]:
        return self.__headers

    @property
    def is_redirect(self) -> bool:
        return True

    def __repr__(self) -> str:
        return '<Redirect {} {}>'.format(self.code, self.url)


class HttpError(HttpResult, Error):
    """
    Any response from the origin which is neither a success nor a redirect.
    """

    def __init__(self, uri: str, response: Response) -> None:
        self._init_result(uri, response.status)
        self.__response = response
        message = str(self.code)
        if response.reason:
            message += ' "{}"'.format(response.reason)
        super().__init__(message)

    @property
    def details(self) -> str:
        # The GitHub raw site only responds with `text/plain` for errors.
        return _text(self.__response)

    @property
    def is_not_found(self) -> bool:
        return self.code == 404

    @property
    def is_error(self) -> bool:
        return True


class GatewayError(HttpResult, Error):
    """
    A transport failure, reported with a synthesized status code.

    The code never comes from a real status line: 504 for timeouts, 502 for
    protocol and TLS failures, and 520 for anything else.
    """

    def __init__(self, uri: str, code: int, cause: BaseException) -> None:
        self._init_result(uri, code)
        self.__cause = cause
        super().__init__('{} "{}"'.format(self.code, status_phrase(self.code)))
        self.__cause__ = cause

    @property
    def cause(self) -> BaseException:
        return self.__cause

    @property
    def details(self) -> str:
        return str(self.__cause)

    @property
    def is_error(self) -> bool:
        return True
