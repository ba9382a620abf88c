from abc import ABC, abstractmethod
from dataclasses import dataclass
import hashlib
import json
import logging
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Callable, Dict, Iterable, Mapping, Optional
from .util import clamp, DataclassJSONDecoder, DataclassJSONEncoder
from .model import Response


logger = logging.getLogger(__name__)


class Cache(ABC):
    """
    An abstraction of a response cache.

    A response cache has a relatively narrow scope: to remember a response under a key such that it can be recalled
    later. Note that this deliberately precludes certain responsibilities such as deciding when an entry is stale. The
    adapter using the cache determines when a cache entry is stale, and also how to replace it.

    Any locking a store needs is its own business. The adapter performs `fetch()` and `write()` as two separate calls,
    so concurrent callers racing on the same key simply see the last write win.
    """

    @abstractmethod
    def fetch(self, key: str, options: Mapping[str, Any], producer: Callable[[], Response]) -> Response:
        """
        Read through the cache.

        @param key
          The key to look up in the cache.
        @param options
          Opaque store-specific options, passed through untouched by the adapter.
        @param producer
          Called at most once, and only on a miss, to produce the response to store under `key`. Any exception it
          raises propagates and nothing is stored.
        @return
          The cached response for `key`, or the freshly produced one.
        """

    @abstractmethod
    def write(self, key: str, response: Response, options: Mapping[str, Any]) -> None:
        """
        Unconditionally replace the response stored under `key`.
        """

    def close(self):
        """
        Close any resources associated with the cache.
        """


class NullCache(Cache):
    """
    A cache which never remembers anything. Caching is opt-in.
    """

    def fetch(self, key: str, options: Mapping[str, Any], producer: Callable[[], Response]) -> Response:
        return producer()

    def write(self, key: str, response: Response, options: Mapping[str, Any]) -> None:
        pass


NULL_CACHE = NullCache()


class InMemoryCache(Cache):
    """
    A dict-backed cache. Handy for tests and short-lived processes.

    The options most recently passed for each key are kept in `options`.
    """

    def __init__(self) -> None:
        self.__entries: Dict[str, Response] = {}
        self.__options: Dict[str, Mapping[str, Any]] = {}
        self.__lock = threading.Lock()

    @property
    def options(self) -> Mapping[str, Mapping[str, Any]]:
        return self.__options

    def keys(self) -> Iterable[str]:
        with self.__lock:
            return list(self.__entries)

    def clear(self) -> None:
        with self.__lock:
            self.__entries.clear()
            self.__options.clear()

    def __contains__(self, key: str) -> bool:
        return key in self.__entries

    def __getitem__(self, key: str) -> Response:
        return self.__entries[key]

    def fetch(self, key: str, options: Mapping[str, Any], producer: Callable[[], Response]) -> Response:
        with self.__lock:
            self.__options[key] = options
            response = self.__entries.get(key)
        if response is not None:
            logger.info('Cache hit for {}'.format(key))
            return response

        logger.info('Cache miss for {}. Producing a fresh response.'.format(key))
        response = producer()
        with self.__lock:
            self.__entries[key] = response
        return response

    def write(self, key: str, response: Response, options: Mapping[str, Any]) -> None:
        logger.info('Writing cache entry for {}'.format(key))
        with self.__lock:
            self.__options[key] = options
            self.__entries[key] = response


@dataclass
class FileCacheEntryModel:
    status: int
    reason: Optional[str]
    headers: Mapping[str, str]
    body: str


class CorruptEntry(Exception):
    def __init__(self, entry_path: Path):
        super().__init__()
        self.__entry_path = entry_path

    @property
    def entry_path(self) -> Path:
        return self.__entry_path


class FileCache(Cache):
    """
    A cache persisted to a directory.

    Each key gets an entry file holding the status, reason and headers as JSON, plus a pointer to a separate body file.
    If either file is missing or unreadable the entry is considered a cache miss.
    """

    # TODO Implement proper file locking across processes.

    def __init__(self, directory: Path, cache_directory_levels: int) -> None:
        """
        Initialize the file cache.

        @param directory
          The path to the root directory of the cache.
        @param cache_directory_levels
          The number of subdirectory levels to use in the cache directory. This
          will be clamped to be between 0 and 20, respectively.
        """
        self.__directory = Path(directory)
        self.__entry_directory = self.__directory / 'entries'
        self.__body_directory = self.__directory / 'bodies'
        self.__cache_directory_levels = clamp(cache_directory_levels, 0, 20)

    def _get_path(self, key: str) -> Path:
        hashed = hashlib.sha256(key.encode('utf-8')).hexdigest()
        return self._split_path(hashed)

    def _split_path(self, path: str) -> Path:
        subdirectories = (list(path[:self.__cache_directory_levels])
                          + [path[self.__cache_directory_levels:]])
        return Path(*subdirectories)

    def _load_entry(self, entry_path: Path) -> FileCacheEntryModel:
        """
        Read a cache entry from a file.

        @param entry_path
            The path to the entry file.
        @return
            The decoded contents of the file.
        @throws FileNotFoundError
            If there is no entry file.
        @throws CorruptEntry
            If the entry file could not be parsed.
        """
        try:
            with open(entry_path, 'r') as f:
                return json.load(f, cls=DataclassJSONDecoder, class_type=FileCacheEntryModel)
        except (TypeError, json.JSONDecodeError):
            raise CorruptEntry(entry_path)

    def _read(self, key: str) -> Optional[Response]:
        entry_path = self.__entry_directory / self._get_path(key)
        try:
            logger.info('Looking at the file system for a cache entry for {}'.format(key))
            entry_model = self._load_entry(entry_path)
        except FileNotFoundError:
            logger.info('No matching cache entry found.')
            return None
        except CorruptEntry as e:
            logger.warning('Found a corrupt cache entry. Deleting the entry file.')
            self._delete_paths([e.entry_path])
            return None

        body_path = self.__body_directory / entry_model.body
        try:
            with open(body_path, 'rb') as f:
                body = f.read()
        except FileNotFoundError:
            logger.warning('Cache entry points to a missing body file. Deleting the entry file.')
            self._delete_paths([entry_path])
            return None

        logger.info('Loaded entry file. Returning the cached response')
        return Response(status=entry_model.status,
                        reason=entry_model.reason,
                        headers=entry_model.headers,
                        body=body)

    def fetch(self, key: str, options: Mapping[str, Any], producer: Callable[[], Response]) -> Response:
        response = self._read(key)
        if response is not None:
            return response

        response = producer()
        self.write(key, response, options)
        return response

    def write(self, key: str, response: Response, options: Mapping[str, Any]) -> None:
        logger.info('Building path to the entry file.')
        entry_path = self.__entry_directory / self._get_path(key)

        previous_body = None
        try:
            previous_body = self.__body_directory / self._load_entry(entry_path).body
        except (FileNotFoundError, CorruptEntry):
            pass

        # We use a randomized body path as the entry can point to it anyways.
        body_path = self._split_path(os.urandom(32).hex())
        entry_model = FileCacheEntryModel(status=response.status,
                                          reason=response.reason,
                                          headers=dict(response.headers),
                                          body=str(body_path))

        logger.info('Writing body file {}'.format(body_path))
        (self.__body_directory / body_path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.__body_directory / body_path, 'wb') as f:
            f.write(response.body)

        # Write the entry to a temporary file first so readers never see a partial entry.
        logger.info('Creating entry file that points to the body file')
        entry_path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(mode='w', dir=entry_path.parent, delete=False) as f:
            json.dump(entry_model, f, cls=DataclassJSONEncoder)
        os.replace(f.name, entry_path)

        if previous_body is not None:
            self._delete_paths([previous_body])

    def _delete_paths(self, paths_to_delete: Iterable[Path]) -> None:
        for path in paths_to_delete:
            try:
                logger.info('Deleting {}'.format(path))
                path.unlink()
            except FileNotFoundError:
                pass
            except Exception:
                logger.exception('Unexpected error occurred while deleting {}'.format(path))
