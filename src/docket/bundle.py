"""
JavaScript bundling through Rollup, with Babel transpilation.
"""
from __future__ import annotations

import shutil
import typing as t
from pathlib import Path

from .dependencies import WebExecDependency
from .simple import BaseCommandStep

if t.TYPE_CHECKING:
    from _typeshed import StrOrBytesPath


class RollupStep(BaseCommandStep):
    """
    Bundles an entry module and everything it imports into a single browser
    script, optionally with a sourcemap written next to each output.

    @plugins are passed to Rollup's `--plugin` option; the default runs the
    Babel plugin with runtime helpers.
    """
    tool_name = 'Rollup'

    @classmethod
    def get_dependencies(cls):
        return super().get_dependencies() | {
            WebExecDependency('npx', 'https://nodejs.org/en/download'),
        }

    def __init__(self,
                 name: str,
                 output_format: str = 'umd',
                 sourcemap: bool = True,
                 plugins: t.Sequence[str] = ("babel={babelHelpers: 'runtime'}",),
                 command: t.Sequence[str] = ('npx', 'rollup'),
                 cwd: Path | None = None):
        self.name = name
        self.output_format = output_format
        self.sourcemap = sourcemap
        self.plugins = list(plugins)
        self.command = list(command)
        self.cwd = cwd

    def __repr__(self):
        return f'RollupStep({self.name!r}, output_format={self.output_format!r})'

    def get_command(self, input_path: Path, output_path: Path) -> list[StrOrBytesPath]:
        command: list[StrOrBytesPath] = [
            *self.command,
            input_path,
            '--file', output_path,
            '--format', self.output_format,
            '--name', self.name,
        ]
        if self.sourcemap:
            command.append('--sourcemap')
        for plugin in self.plugins:
            command.extend(['--plugin', plugin])
        return command

    def find_sources(self, path: Path):
        """
        The entry module plus every other module beside or below it.
        """
        modules = sorted(p for p in path.parent.rglob('*.js') if p != path)
        return [path, *modules]

    def __call__(self, path: Path, output_paths: list[Path]):
        if not output_paths:
            return
        first = output_paths[0]
        self.run_command(path, first)

        all_outputs = list(output_paths)
        for o_path in output_paths[1:]:
            o_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(first, o_path)

        if self.sourcemap:
            first_map = first.with_name(first.name + '.map')
            if first_map.exists():
                for o_path in output_paths:
                    o_map = o_path.with_name(o_path.name + '.map')
                    if o_map != first_map:
                        shutil.copy(first_map, o_map)
                    all_outputs.append(o_map)

        return self.find_sources(path), all_outputs
