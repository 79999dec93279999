"""
A markdown-it-py HTML renderer with Pygments-friendly code fences and
pluggable front matter parsing.
"""
from __future__ import annotations

import typing as t

from markdown_it.common.utils import escapeHtml, unescapeAll
from markdown_it.renderer import RendererHTML

from .md_frontmatter import FrontMatterParser, get_frontmatter_parser

if t.TYPE_CHECKING:
    from collections.abc import Sequence
    from markdown_it.token import Token
    from markdown_it.utils import EnvType, OptionsDict


class DocsRendererHTML(RendererHTML):
    """
    Renders code fences through the configured highlighter without wrapping
    them again, and collects front matter into `env['docket_meta']`.
    """
    def __init__(self, parser: t.Any = None):
        super().__init__(parser)
        self.front_matter_parser: FrontMatterParser = get_frontmatter_parser('yaml')

    def set_front_matter_parser(self, parser: FrontMatterParser):
        self.front_matter_parser = parser

    # https://github.com/executablebooks/markdown-it-py/issues/256
    def fence(self, tokens: Sequence[Token], idx: int, options: OptionsDict, env: EnvType):
        token = tokens[idx]
        info = unescapeAll(token.info).strip() if token.info else ''
        lang_name = info.split(maxsplit=1)[0] if info else ''

        highlighted = options.highlight and options.highlight(token.content, lang_name, '')
        if highlighted:
            return highlighted
        return f'<pre><code>{escapeHtml(token.content)}</code></pre>\n'

    def front_matter(self, tokens: Sequence[Token], idx: int, _options: OptionsDict, env: EnvType):
        parsed = self.front_matter_parser(tokens[idx].content)
        env['docket_meta'].update(parsed)
        return ''
