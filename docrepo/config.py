from dataclasses import dataclass, field, fields
import os
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .cache import Cache


DEFAULT_DOC_FORMATS = frozenset({'.md', '.markdown', '.htm', '.html'})

ENVIRONMENT_SETTINGS = {
    'DOCREPO_ORG': 'org',
    'DOCREPO_REPO': 'repo',
    'DOCREPO_BRANCH': 'branch',
    'DOCREPO_DOC_ROOT': 'doc_root',
    'DOCREPO_FALLBACK_EXT': 'fallback_ext',
    'GITHUB_TOKEN': 'github_token',
}


@dataclass(frozen=True)
class Configuration:
    """
    Where documents live and how they are cached.

    Configurations are immutable values; build a new one with
    `dataclasses.replace()` to change a setting.
    """

    org: Optional[str] = None
    repo: Optional[str] = None
    branch: str = 'master'
    doc_root: str = 'docs'
    fallback_ext: str = '.md'
    doc_formats: FrozenSet[str] = DEFAULT_DOC_FORMATS
    # Stores and option mappings need not be hashable.
    cache_store: Optional[Cache] = field(default=None, hash=False)
    cache_options: Mapping[str, Any] = field(default_factory=dict, hash=False)
    github_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'doc_formats', frozenset(self.doc_formats))
        object.__setattr__(self, 'cache_options', MappingProxyType(dict(self.cache_options)))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None, **overrides) -> 'Configuration':
        """
        Build a configuration from `DOCREPO_*` environment variables and `GITHUB_TOKEN`.

        Keyword overrides take precedence over the environment.
        """
        if environ is None:
            environ = os.environ
        settings = {setting: environ[name]
                    for name, setting in ENVIRONMENT_SETTINGS.items()
                    if environ.get(name)}
        settings.update(overrides)
        return cls(**settings)
