"""
Markdown to HTML conversion.

Fenced code blocks are highlighted with Pygments and rendered as
``<div class="highlight"><pre><code class="language-X" data-lang="X">``;
headings get ids so they can be linked to. Bare URLs become links and
``~~text~~`` is struck through, as on GitHub.
"""

from typing import Any, Iterable, Mapping
import xml.etree.ElementTree as etree

import markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor
from markdown.util import AtomicString
from pygments.formatters.html import HtmlFormatter


LANG_PREFIX = 'language-'

STRIKETHROUGH_RE = r'(~{2})(.+?)~{2}'
BARE_LINK_RE = r'\b((?:https?://|www\.)[^\s<]*[^\s<.,:;"\')\]!?])'

DEFAULT_EXTENSIONS = (
    'tables',
    'fenced_code',
    'codehilite',
    'toc',
    'sane_lists',
    'docrepo.converters:GithubFlavorExtension',
)


class CodeFormatter(HtmlFormatter):
    """
    Pygments HTML formatter that labels the `<code>` element with its language.
    """

    def __init__(self, lang_str: str = '', **options) -> None:
        super().__init__(**options)
        self.lang_str = lang_str

    def _wrap_code(self, inner):
        lang = self.lang_str[len(LANG_PREFIX):] if self.lang_str.startswith(LANG_PREFIX) else self.lang_str
        yield 0, '<code class="{}{}" data-lang="{}">'.format(LANG_PREFIX, lang, lang)
        yield from inner
        yield 0, '</code>'


class BareLinkInlineProcessor(InlineProcessor):
    ANCESTOR_EXCLUDES = ('a',)

    def handleMatch(self, m, data):
        url = m.group(1)
        el = etree.Element('a')
        el.set('href', url if '://' in url else 'http://' + url)
        el.text = AtomicString(url)
        return el, m.start(0), m.end(0)


class GithubFlavorExtension(Extension):
    """
    Strikethrough and bare URL autolinking.
    """

    def extendMarkdown(self, md):
        md.inlinePatterns.register(SimpleTagInlineProcessor(STRIKETHROUGH_RE, 'del'), 'strikethrough', 65)
        # Runs after raw HTML (90) is stashed so attribute values are left alone.
        md.inlinePatterns.register(BareLinkInlineProcessor(BARE_LINK_RE, md), 'bare_link', 75)


DEFAULT_EXTENSION_CONFIGS = {
    'codehilite': {
        'css_class': 'highlight',
        'guess_lang': False,
        'lang_prefix': LANG_PREFIX,
        'pygments_formatter': CodeFormatter,
    },
}


class MarkdownConverter:
    def __init__(self,
                 extensions: Iterable[str] = None,
                 extension_configs: Mapping[str, Mapping[str, Any]] = None) -> None:
        self.__extensions = list(DEFAULT_EXTENSIONS if extensions is None else extensions)
        self.__extension_configs = dict(DEFAULT_EXTENSION_CONFIGS if extension_configs is None else extension_configs)

    @property
    def extensions(self):
        return tuple(self.__extensions)

    def convert(self, content: str) -> str:
        # `markdown.Markdown` instances keep state between conversions, so build one per call.
        md = markdown.Markdown(extensions=self.__extensions, extension_configs=self.__extension_configs)
        return md.convert(content)

    __call__ = convert


_default_converter = MarkdownConverter()


def render(content: str) -> str:
    return _default_converter.convert(content)
