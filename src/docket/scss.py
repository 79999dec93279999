"""
Stylesheet compilation with libsass.
"""
from __future__ import annotations

import typing as t
from pathlib import Path

from .core import StepFailedException
from .dependencies import PipDependency
from .simple import BaseStandardStep


class SassStep(BaseStandardStep):
    """
    Compiles a `.scss` file to CSS. Every stylesheet in the include paths is
    recorded as a source, so editing a partial rebuilds the files using it.
    """
    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('libsass', check_name='sass'),
        }

    def __init__(self,
                 output_style: str = 'expanded',
                 include_paths: t.Sequence[Path] = ()):
        self.output_style = output_style
        self.include_paths = list(include_paths)

    def __repr__(self):
        return f'SassStep(output_style={self.output_style!r})'

    def get_include_paths(self, path: Path):
        return [path.parent, *self.include_paths]

    def find_sources(self, path: Path):
        sources = {path}
        for include_dir in self.get_include_paths(path):
            if include_dir.is_dir():
                sources.update(include_dir.rglob('*.scss'))
        sources.discard(path)
        return [path, *sorted(sources)]

    def __call__(self, path: Path, output_paths: list[Path]):
        import sass
        try:
            css = sass.compile(
                filename=str(path),
                output_style=self.output_style,
                include_paths=[str(p) for p in self.get_include_paths(path)],
            )
        except sass.CompileError as e:
            raise StepFailedException(self, path, str(e)) from e

        self.write_output(css, output_paths)
        return self.find_sources(path), output_paths
