"""
Fetch Markdown documentation from a GitHub repository, with conditional HTTP caching.
"""

__version__ = '0.1.0'

from .adapter import CachedAdapter, create
from .cache import Cache, FileCache, InMemoryCache, NullCache
from .config import Configuration
from .errors import Error, UnhandledAction
from .handler import ResultHandler, dispatch
from .repository import Repository
from .results import Doc, GatewayError, HttpError, Redirect
