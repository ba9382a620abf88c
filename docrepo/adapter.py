from datetime import datetime, timezone
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .cache import Cache, FileCache, NULL_CACHE
from .model import Request, Response, merge_headers
from .results import Doc, GatewayError, HttpError, HttpResult, Redirect
from .transport import Transport, TransportFailure
from .util import parse_http_date


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def classify(uri: str, response: Response) -> HttpResult:
    if 300 <= response.status < 400:
        return Redirect(response.headers.get('Location', ''),
                        code=response.status,
                        headers=response.headers)
    if 200 <= response.status < 300:
        return Doc(uri, response)
    return HttpError(uri, response)


class CachedAdapter:
    """
    Retrieves documents from a single host through a response cache.

    Steps for every `retrieve()`:
    1. Read through the cache, fetching the document on a miss.
    2. If the cached response has expired, revalidate it with a conditional GET. A "304 Not Modified" refreshes the
       cached headers and keeps the cached body; any other response replaces the entry outright.
    3. Classify the final response into a result.

    Transport failures at any step become a `GatewayError` and leave the cache untouched.
    """

    def __init__(self,
                 host: str,
                 cache: Cache = None,
                 cache_options: Mapping[str, Any] = None,
                 transport: Transport = None,
                 clock: Callable[[], datetime] = None,
                 **opts) -> None:
        self.__host = str(host)
        self.__cache = NULL_CACHE if cache is None else cache
        self.__cache_options = MappingProxyType(dict(cache_options or {}))
        self.__transport = Transport(self.__host, **opts) if transport is None else transport
        self.__clock = clock or _utcnow

    @property
    def host(self) -> str:
        return self.__host

    @property
    def cache_options(self) -> Mapping[str, Any]:
        return self.__cache_options

    @property
    def transport(self) -> Transport:
        return self.__transport

    def cache_key(self, uri: str) -> str:
        return '{}:{}'.format(self.__host, uri)

    def retrieve(self, uri: str) -> HttpResult:
        key = self.cache_key(uri)
        try:
            response = self.__cache.fetch(key, self.__cache_options, lambda: self._send(uri))
            if self.is_expired(response):
                logger.info('Cached response for {} has expired. Revalidating.'.format(key))
                response = self.refresh(uri, response)
                self.__cache.write(key, response, self.__cache_options)
        except TransportFailure as e:
            return GatewayError(uri, code=e.code, cause=e.cause)

        result = classify(uri, response)
        logger.info('Retrieved {} with status {}'.format(uri, result.code))
        return result

    def is_expired(self, response: Response) -> bool:
        """
        Whether `response` must be revalidated before use.

        A response without an `Expires` header never expires. An `Expires` value which is not a valid HTTP date
        counts as already expired.
        """
        expires = response.headers.get('Expires')
        if expires is None:
            return False
        expires_at = parse_http_date(expires)
        if expires_at is None:
            return True
        return expires_at < self.__clock()

    def refresh(self, uri: str, response: Response) -> Response:
        """
        Revalidate `response` with a conditional GET.

        @throws TransportFailure
          If the revalidation request fails.
        """
        headers = {}
        etag = response.headers.get('ETag')
        if etag is not None:
            headers['If-None-Match'] = etag
        modified_since = response.headers.get('Last-Modified', response.headers.get('Date'))
        if modified_since is not None:
            headers['If-Modified-Since'] = modified_since

        fresh = self._send(uri, headers)
        if fresh.status == 304:
            logger.info('{} was not modified. Merging refreshed headers.'.format(uri))
            return merge_headers(response, fresh.headers)
        logger.info('{} was replaced with a {} response.'.format(uri, fresh.status))
        return fresh

    def _send(self, uri: str, headers: Mapping[str, str] = None) -> Response:
        return self.__transport.send(Request(uri=uri, headers=dict(headers or {})))

    def close(self):
        self.__cache.close()
        self.__transport.close()


def create(host: str, directory: Path, **opts) -> CachedAdapter:
    return CachedAdapter(host, cache=FileCache(directory, 5), **opts)
