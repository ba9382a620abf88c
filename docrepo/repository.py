import logging
import posixpath
import re

from .adapter import CachedAdapter
from .config import Configuration
from .handler import ResultHandler, dispatch
from .results import HttpResult, Redirect


logger = logging.getLogger(__name__)

GITHUB_HOST = 'raw.githubusercontent.com'


class Repository:
    """
    The documentation tree of one GitHub repository branch.
    """

    def __init__(self, config: Configuration, adapter: CachedAdapter = None) -> None:
        self.__config = config
        if adapter is None:
            adapter = CachedAdapter(GITHUB_HOST,
                                    cache=config.cache_store,
                                    cache_options=config.cache_options,
                                    token=config.github_token)
        self.__adapter = adapter

    @property
    def config(self) -> Configuration:
        return self.__config

    @property
    def adapter(self) -> CachedAdapter:
        return self.__adapter

    @property
    def org(self):
        return self.__config.org

    @property
    def repo(self):
        return self.__config.repo

    @property
    def branch(self) -> str:
        return self.__config.branch

    @property
    def doc_root(self) -> str:
        return self.__config.doc_root

    @property
    def fallback_ext(self) -> str:
        return self.__config.fallback_ext

    @property
    def doc_formats(self):
        return self.__config.doc_formats

    def uri_for(self, slug: str) -> str:
        uri = '/{}/{}/{}/{}/{}'.format(self.org, self.repo, self.branch, self.doc_root, self._ensure_ext(slug))
        return re.sub('/+', '/', uri)

    def request(self, slug: str, result_handler: ResultHandler):
        """
        Retrieve the document for `slug` and dispatch the result to `result_handler`.

        @return
          Whatever the dispatched action returns.
        """
        result = self.detect(self.uri_for(slug))
        return dispatch(result, result_handler)

    def detect(self, uri: str) -> HttpResult:
        if self._is_redirect_type(posixpath.splitext(uri)[1]):
            logger.info('{} is not a document format. Redirecting to the raw file.'.format(uri))
            return Redirect('https://{}{}'.format(GITHUB_HOST, uri))
        return self.__adapter.retrieve(uri)

    def _is_redirect_type(self, ext: str) -> bool:
        return ext not in self.doc_formats

    def _ensure_ext(self, slug: str) -> str:
        if posixpath.splitext(slug)[1]:
            return slug
        return slug + self.fallback_ext
