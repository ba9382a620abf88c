import logging
from types import MappingProxyType
from typing import Any, Mapping

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import ProtocolError, TimeoutError as Urllib3TimeoutError

from . import __version__
from .model import Request, Response
from .results import BAD_GATEWAY, GATEWAY_TIMEOUT, UNKNOWN_ERROR


logger = logging.getLogger(__name__)


# requests has no default timeout at all, which is far too long for our purposes
DEFAULT_OPTS = {
    'connect_timeout': 10,
    'read_timeout': 10,
    'ssl_timeout': 10,
    'verify': True,
    'token': None,
    'user_agent': 'docrepo/{}'.format(__version__),
}

PROTOCOL_ERRORS = (
    requests.exceptions.SSLError,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
    requests.exceptions.InvalidHeader,
)


class TransportFailure(Exception):
    """
    A request never produced a usable response.

    Carries the gateway status code the failure maps to and the original exception.
    """

    def __init__(self, code: int, cause: BaseException) -> None:
        super().__init__(code, cause)
        self.__code = code
        self.__cause = cause

    @property
    def code(self) -> int:
        return self.__code

    @property
    def cause(self) -> BaseException:
        return self.__cause


def classify(error: BaseException) -> int:
    """
    Map a transport exception to the gateway status code reported for it.

    Timeouts are checked first since `requests.ConnectTimeout` is also a connection error.
    """
    if isinstance(error, requests.Timeout):
        return GATEWAY_TIMEOUT
    if isinstance(error, requests.ConnectionError) and error.args and isinstance(error.args[0], Urllib3TimeoutError):
        # A read timeout while the body is being consumed surfaces as a connection error.
        return GATEWAY_TIMEOUT
    if isinstance(error, PROTOCOL_ERRORS):
        return BAD_GATEWAY
    if isinstance(error, requests.ConnectionError) and error.args and isinstance(error.args[0], ProtocolError):
        # urllib3 wraps malformed status lines and dropped connections this way.
        return BAD_GATEWAY
    return UNKNOWN_ERROR


class Transport:
    """
    Sends GET requests to a single host, always over HTTPS.

    Connection options are frozen when the transport is created. Redirects are never followed; they are reported back
    like any other response.
    """

    def __init__(self, host: str, **opts) -> None:
        unknown = set(opts) - set(DEFAULT_OPTS)
        if unknown:
            raise TypeError('Unknown transport options: {}'.format(', '.join(sorted(unknown))))
        self.__host = str(host)
        self.__opts = MappingProxyType(dict(DEFAULT_OPTS, **opts))

        self.session = requests.Session()
        self.session.mount('https://', HTTPAdapter(max_retries=0))
        self.session.headers['User-Agent'] = self.__opts['user_agent']
        if self.__opts['token']:
            self.session.headers['Authorization'] = 'token {}'.format(self.__opts['token'])

    @property
    def host(self) -> str:
        return self.__host

    @property
    def opts(self) -> Mapping[str, Any]:
        return self.__opts

    @property
    def timeout(self):
        # The TLS handshake runs inside urllib3's connect phase.
        connect = max(self.__opts['connect_timeout'], self.__opts['ssl_timeout'])
        return (connect, self.__opts['read_timeout'])

    def url_for(self, uri: str) -> str:
        return 'https://{}/{}'.format(self.__host, uri.lstrip('/'))

    def send(self, request: Request) -> Response:
        """
        Send `request` and snapshot the response.

        @throws TransportFailure
          If no response could be obtained. Any HTTP status, error or not, is returned as a response.
        """
        url = self.url_for(request.uri)
        logger.info('Sending {} {}'.format(request.method, url))
        try:
            requests_response = self.session.request(request.method,
                                                     url,
                                                     headers=dict(request.headers),
                                                     timeout=self.timeout,
                                                     verify=self.__opts['verify'],
                                                     allow_redirects=False)
            return Response(status=requests_response.status_code,
                            reason=requests_response.reason,
                            headers=requests_response.headers,
                            body=requests_response.content)
        except (requests.RequestException, OSError) as e:
            code = classify(e)
            logger.warning('Request to {} failed with {}: {}'.format(url, code, e))
            raise TransportFailure(code, e) from e

    def close(self):
        self.session.close()
