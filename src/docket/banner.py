"""
Copyright/version banners for distributable CSS and JS.
"""
from __future__ import annotations

import typing as t
from pathlib import Path

from .config import DEFAULT_BANNER
from .simple import TextTransformStep

if t.TYPE_CHECKING:
    from .config import Project


def render_banner(template: str, fields: t.Mapping[str, str], **extra: str):
    """
    Fill in a banner @template using `str.format` fields.
    """
    try:
        return template.format_map({**fields, **extra})
    except KeyError as e:
        raise ValueError(f'Unknown banner field {e.args[0]!r}') from e


def apply_banner(banner: str, text: str):
    """
    Prefix @text with @banner, unless it is already there.
    """
    if text.startswith(banner):
        return text
    return banner + text


class BannerStep(TextTransformStep):
    """
    Stamps files with a rendered banner comment.
    """
    def __init__(self, banner: str):
        self.banner = banner

    @classmethod
    def for_project(cls, project: Project):
        return cls(render_banner(
            project.settings.get('banner', DEFAULT_BANNER),
            project.banner_fields()
        ))

    def transform(self, text: str, path: Path) -> str:
        return apply_banner(self.banner, text)
