"""
Core classes and types for docket build pipelines.
"""
from __future__ import annotations

import abc
import shutil
import typing as t
from pathlib import Path

from .custody import Custodian
from .dependencies import Dependency
from .pretty_utils import track_progress

if t.TYPE_CHECKING:
    from collections.abc import Sequence, Set


T = t.TypeVar('T')
T2 = t.TypeVar('T2')
ContextDir = t.Literal['input_dir', 'output_dir', 'working_dir']
BuildSettingsKey = t.Literal[ContextDir, 'custody_cache', 'purge_dirs']
StepResult = t.Union[None, tuple['Sequence[Path]', list[Path]]]


class InputBuildSettings(t.TypedDict, total=False):
    """
    TypedDict for partially specified build settings.
    """
    input_dir: Path
    output_dir: Path
    working_dir: Path | None
    custody_cache: Path | None
    purge_dirs: bool | None


class BuildSettings(t.TypedDict):
    """
    TypedDict for fully resolved build settings ready for passing to Context.
    """
    input_dir: Path
    output_dir: Path
    working_dir: Path
    custody_cache: Path | None
    purge_dirs: bool | None


def _rm_children(path: Path):
    if not path.exists():
        return
    for child in path.iterdir():
        if child.is_dir():
            shutil.rmtree(child)
        else:
            child.unlink()


def _rm_orphans(path: Path, keep: set[Path]):
    if not path.exists():
        return False
    emptied = True
    for child in path.iterdir():
        if child in keep:
            emptied = False
        elif child.is_dir():
            if _rm_orphans(child, keep):
                child.rmdir()
            else:
                emptied = False
        else:
            child.unlink()
    return emptied


class Context:
    """
    Binds a set of Rules to directories and runs builds with them.
    """
    def __init__(self,
                 settings: BuildSettings,
                 rules: list[Rule],
                 custodian: Custodian | None = None):
        self.settings = settings
        self.custodian = custodian or Custodian()
        self.rules: list[Rule] = []
        for rule in rules:
            self.rules.append(rule)
            self.bind(rule.step)

    @t.overload
    def __getitem__(self, key: ContextDir) -> Path: ...
    @t.overload
    def __getitem__(self, key: t.Literal['custody_cache']) -> Path | None: ...
    @t.overload
    def __getitem__(self, key: t.Literal['purge_dirs']) -> bool | None: ...
    def __getitem__(self, key):
        return self.settings[key]

    def bind(self, step: Step | None):
        """
        Bind a Step to this Context after making sure it can run.
        """
        if step:
            if not step.is_available():
                raise StepUnavailableException(step)
            step.bind(self)

    def find_inputs(self, path: Path):
        """
        Yield every file below @path, recursively. Directories themselves are
        not yielded.
        """
        for candidate in sorted(path.iterdir()):
            if candidate.is_dir():
                yield from self.find_inputs(candidate)
            else:
                yield candidate

    def match_paths(self, input_paths: list[Path]):
        """
        Match input paths against the Rules, pairing each with the Step that
        will handle it and the output paths it will produce. Steps keep the
        order their Rules were defined in.
        """
        tasks: dict[Step, list[tuple[Path, list[Path]]]]
        tasks = {r.step: [] for r in self.rules if r.step}

        for path in track_progress(input_paths, 'Planning...'):
            for rule in self.rules:
                match = rule.matcher(self, path)
                if not match:
                    continue
                # A Rule without a Step is an ignore rule.
                if not rule.step:
                    break

                output_paths: list[Path] = []
                halted = False
                for pathcalc in rule.path_calcs:
                    # None in the path list means "do this, then stop".
                    if pathcalc is None:
                        halted = True
                        break
                    output_paths.append(pathcalc(self, path, match))

                tasks[rule.step].append((path, output_paths))
                if halted:
                    break

        return tasks

    def process(self, input_paths: list[Path] | None = None):
        """
        Run the Rules over @input_paths, or over everything in the input
        directory when none are given. Outputs landing in the working
        directory are fed back through `process()`.
        """
        input_paths = input_paths or list(self.find_inputs(self['input_dir']))

        flattened: list[tuple[Step, Path, list[Path]]] = []
        for step, paths in self.match_paths(input_paths).items():
            flattened.extend((step, p, ops) for p, ops in paths)

        further_processing: list[Path] = []
        for step, path, output_paths in track_progress(flattened, 'Processing...'):
            stale, msg = self.custodian.refresh_needed(path, output_paths)
            if stale:
                explicit_chain = step(path, output_paths)
                if explicit_chain:
                    sources, output_paths = explicit_chain
                else:
                    sources = [path]
                self.custodian.add_step(sources, output_paths, msg)
            else:
                output_paths = self.custodian.skip_step(path, output_paths)

            further_processing.extend(
                p for p in output_paths
                if p.is_relative_to(self['working_dir'])
            )

        if further_processing:
            self.process(further_processing)

    def run(self, input_paths: list[Path] | None = None):
        """
        Purge directories if requested, then load custody data, process, and
        save custody data. Orphaned outputs are pruned when `purge_dirs` is
        None and a custody cache is in use.
        """
        if self['purge_dirs']:
            _rm_children(self['output_dir'])
            _rm_children(self['working_dir'])
        self['output_dir'].mkdir(parents=True, exist_ok=True)
        self['working_dir'].mkdir(parents=True, exist_ok=True)

        self.custodian.bind(self)
        if cache_file := self['custody_cache']:
            self.custodian.load_file(cache_file)
        self.process(input_paths)
        if cache_file:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            self.custodian.dump_file(cache_file)
            if self['purge_dirs'] is None:
                touched = set(self.custodian.get_all_paths())
                _rm_orphans(self['output_dir'], touched)
                _rm_orphans(self['working_dir'], touched)


class Matcher(t.Generic[T], abc.ABC):
    """
    Abstract base class for path Matchers. Matchers can be combined with |
    and &.
    """
    @abc.abstractmethod
    def __call__(self, context: Context, path: Path) -> T:
        ...

    def __or__(self, other: Matcher[T2]):
        return _OrMatcher(self, other)

    def __and__(self, other: Matcher[T2]):
        return _AndMatcher(self, other)


class _OrMatcher(Matcher[T | T2]):
    def __init__(self, left: Matcher[T], right: Matcher[T2]):
        self.left = left
        self.right = right

    def __call__(self, context: Context, path: Path):
        return self.left(context, path) or self.right(context, path)


class _AndMatcher(Matcher[T | T2]):
    def __init__(self, left: Matcher[T], right: Matcher[T2]):
        self.left = left
        self.right = right

    def __call__(self, context: Context, path: Path):
        return self.left(context, path) and self.right(context, path)


class PathCalc(t.Generic[T], abc.ABC):
    """
    Abstract base class for output path calculators, which may use the match
    data a `Matcher` produced.
    """
    @abc.abstractmethod
    def __call__(self, context: Context, path: Path, match: T) -> Path:
        ...


class Rule(t.Generic[T]):
    """
    One build rule: a Matcher, output path calculators, and an optional Step.
    """
    def __init__(self,
                 matcher: Matcher[T],
                 path_calc: t.Sequence[PathCalc[T] | Path | None] | PathCalc[T] | Path | None,
                 step: Step | None = None):
        self.matcher = matcher
        self.step = step
        if not isinstance(path_calc, t.Sequence):
            path_calc = [path_calc]
        self.path_calcs = [_FixedPathCalc(p) if isinstance(p, Path) else p for p in path_calc]

    def __repr__(self):
        return f'Rule({self.matcher!r}, step={self.step!r})'


class _FixedPathCalc(PathCalc[t.Any]):
    def __init__(self, path: Path):
        self.path = path

    def __call__(self, context: Context, path: Path, match: t.Any) -> Path:
        return self.path


class Step(abc.ABC):
    """
    Abstract base class for Steps, the units of work a Rule can run.
    """
    context: Context
    _step_registry: list[t.Type[Step]] = []

    def __init_subclass__(cls, **kw):
        super().__init_subclass__(**kw)
        cls._step_registry.append(cls)

    @classmethod
    def get_all_steps(cls):
        """
        Return a list of all currently known Steps.
        """
        return list(cls._step_registry)

    @classmethod
    def get_available_steps(cls):
        """
        Return a list of all currently known Steps whose requirements are met.
        """
        return [s for s in cls._step_registry if s.is_available()]

    @classmethod
    def is_available(cls) -> bool:
        """
        Return whether this Step's requirements are installed.
        """
        return all(d.satisfied for d in cls.get_dependencies())

    @classmethod
    def get_dependencies(cls) -> Set[Dependency]:
        """
        Return the requirements for this Step.
        """
        return set()

    def bind(self, context: Context):
        """
        Bind this Step to a Context.
        """
        self.context = context

    def __repr__(self):
        return f'{self.__class__.__name__}()'

    @abc.abstractmethod
    def __call__(self, path: Path, output_paths: list[Path]) -> StepResult:
        ...


class StepUnavailableException(Exception):
    """
    Raised when a Step cannot be used because of missing dependencies.
    """
    def __init__(self, step: Step, *args: t.Any):
        self.step = step
        super().__init__(step, *args)


class StepFailedException(Exception):
    """
    Raised when the tool behind a Step reports an error for an input.
    """
    def __init__(self, step: Step, path: Path, message: str):
        self.step = step
        self.path = path
        self.message = message
        super().__init__(f'{step} failed on {path}: {message}')
