"""
Steps for vendor-prefixing and minifying CSS, and minifying JS.
"""
from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .dependencies import PipDependency
from .simple import TextTransformStep


class CSSMinifierStep(TextTransformStep):
    """
    CSS processing with lightningcss: minification, plus prefixing and
    syntax lowering for the browsers in @browsers_list.
    """
    minify = True

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('lightningcss')
        }

    def __init__(self,
                 browsers_list: Sequence[str] | None = ('last 2 versions',),
                 error_recovery: bool = False,
                 parser_flags: dict[str, bool] | None = None,
                 unused_symbols: set[str] | None = None):
        self.browsers_list = list(browsers_list) if browsers_list else None
        self.error_recovery = error_recovery
        self.parser_flags = parser_flags or {}
        self.unused_symbols = unused_symbols

    def __repr__(self):
        return f'{self.__class__.__name__}(browsers_list={self.browsers_list!r})'

    def transform(self, text: str, path: Path) -> str:
        import lightningcss
        return lightningcss.process_stylesheet(
            text,
            filename=str(path),
            error_recovery=self.error_recovery,
            parser_flags=lightningcss.calc_parser_flags(**self.parser_flags),
            unused_symbols=self.unused_symbols,
            browsers_list=self.browsers_list,
            minify=self.minify
        )


class CSSPrefixStep(CSSMinifierStep):
    """
    Adds the vendor prefixes @browsers_list needs, keeping the stylesheet
    readable.
    """
    minify = False


class JSMinifierStep(TextTransformStep):
    """
    JavaScript minification with rjsmin. License comments (`/*! ... */`)
    survive unless @keep_bang_comments is False.
    """
    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('rjsmin'),
        }

    def __init__(self, keep_bang_comments: bool = True):
        self.keep_bang_comments = keep_bang_comments

    def transform(self, text: str, path: Path) -> str:
        import rjsmin
        return rjsmin.jsmin(text, keep_bang_comments=self.keep_bang_comments)
