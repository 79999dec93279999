"""
Matchers and PathCalcs for wiring files between the source, working, and
output directories.
"""
import re
import typing as t
from pathlib import Path

from .core import Context, ContextDir, Matcher, PathCalc
from .custody import CONTEXT_DIR_KEYS


T = t.TypeVar('T')


def _trim_ext_prefix(path: Path, match: re.Match[str]):
    groups = match.groupdict()
    if 'stem' in groups:
        return path.with_stem(groups['stem'])
    if groups.get('ext'):
        return path.with_name(path.name[:-len(groups['ext'])])
    return path


def _relative_source(context: Context, path: Path, match: t.Any, ext: str | None):
    if ext and isinstance(match, re.Match):
        path = _trim_ext_prefix(path, match)
    return path.relative_to(
        context['input_dir']
        if path.is_relative_to(context['input_dir'])
        else context['working_dir']
    )


class DirPathCalc(PathCalc[T]):
    """
    PathCalc which re-roots input paths under @dest, either a Path or the
    name of a Context directory. If @ext is specified it replaces the
    extension; a regex match with an `ext` or `stem` group decides what
    counts as the extension, for names like `site.min.css`. @transform may
    adjust the relative path before it is re-rooted.
    """
    def __init__(self,
                 dest: Path | ContextDir,
                 ext: str | None = None,
                 transform: t.Callable[[Path], Path] | None = None):
        self.dest = dest
        self.ext = ext
        self.transform = transform

    def resolve_dest(self, context: Context) -> Path:
        if self.dest in CONTEXT_DIR_KEYS:
            return context[t.cast(ContextDir, self.dest)]
        return Path(self.dest)

    def relative_path(self, context: Context, path: Path, match: T) -> Path:
        rel = _relative_source(context, path, match, self.ext)
        if self.transform:
            rel = self.transform(rel)
        return rel

    def __call__(self, context: Context, path: Path, match: T) -> Path:
        new_path = self.resolve_dest(context) / self.relative_path(context, path, match)
        if self.ext is not None:
            new_path = new_path.with_suffix(self.ext)
        return new_path


class OutputDirPathCalc(DirPathCalc[T]):
    """
    DirPathCalc targeting the Context's output directory.
    """
    def __init__(self,
                 ext: str | None = None,
                 transform: t.Callable[[Path], Path] | None = None):
        super().__init__('output_dir', ext, transform)


class WorkingDirPathCalc(DirPathCalc[T]):
    """
    DirPathCalc targeting the Context's working directory.
    """
    def __init__(self,
                 ext: str | None = None,
                 transform: t.Callable[[Path], Path] | None = None):
        super().__init__('working_dir', ext, transform)


class StageDirPathCalc(DirPathCalc[T]):
    """
    DirPathCalc for multi-stage processing inside the working directory.

    Files in the working directory are assumed to sit below a stage folder
    (like `prefixed/css/site.css`); that folder is dropped before the path
    is placed under @stage, or directly under @dest when @stage is None.
    """
    def __init__(self,
                 stage: str | None,
                 dest: Path | ContextDir = 'working_dir',
                 ext: str | None = None):
        super().__init__(dest, ext)
        self.stage = stage

    def relative_path(self, context: Context, path: Path, match: T) -> Path:
        rel = super().relative_path(context, path, match)
        if path.is_relative_to(context['working_dir']) and len(rel.parts) > 1:
            rel = Path(*rel.parts[1:])
        if self.stage:
            rel = self.stage / rel
        return rel


class WebIndexPathCalc(DirPathCalc[T]):
    """
    DirPathCalc which nests pages into folders so they get extensionless
    URLs: `guide.md` becomes `guide/index.html`, while `index.md` and
    `guide/index.md` keep their place.
    """
    index_base = 'index'

    def __init__(self,
                 dest: Path | ContextDir = 'output_dir',
                 ext: str | None = None,
                 index_base: str | None = None):
        super().__init__(dest, ext, self._web_transform)
        self.index_base = index_base or self.index_base

    def _web_transform(self, path: Path) -> Path:
        if path.stem == self.index_base:
            return path
        return (path.with_suffix('') / self.index_base).with_suffix(path.suffix)


class REMatcher(Matcher[re.Match | None]):
    """
    Path Matcher using regular expressions. @re_flags will be passed to
    `re.compile()`. When @parent_dir names a Context directory, only paths
    inside it are considered and the pattern is matched against the part
    of the path relative to it.
    """
    def __init__(self, re_string: str, re_flags: int = 0, parent_dir: ContextDir | None = None):
        self.regex = re.compile(re_string, re_flags)
        self.parent_dir: ContextDir | None = parent_dir

    def __repr__(self):
        return f'REMatcher({self.regex.pattern!r}, parent_dir={self.parent_dir!r})'

    def __call__(self, context: Context, path: Path):
        if self.parent_dir:
            if not path.is_relative_to(context[self.parent_dir]):
                return None
            path = path.relative_to(context[self.parent_dir])
        return self.regex.fullmatch(path.as_posix())
