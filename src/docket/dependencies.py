"""
Declarations of what a Step needs installed: Python packages or executables
on PATH.
"""
from __future__ import annotations

import abc
import importlib.util
import shutil
import typing as t


class Dependency(abc.ABC):
    """
    A base class for checkable, composable requirements.
    """
    @property
    @abc.abstractmethod
    def satisfied(self) -> bool:
        """
        Whether this requirement is met.
        """

    @property
    def needed(self) -> bool:
        """
        Whether this requirement applies on the current platform.
        """
        return True

    @property
    @abc.abstractmethod
    def install_hint(self) -> str:
        """
        A short instruction for meeting this requirement.
        """

    def __repr__(self):
        return f'{self.__class__.__name__}({self}, needed={self.needed}, satisfied={self.satisfied})'

    def __or__(self, other: Dependency):
        return _CompoundDependency(' | ', any, self, other)

    def __and__(self, other: Dependency):
        return _CompoundDependency(' & ', all, self, other)


class _CompoundDependency(Dependency):
    def __init__(self,
                 joiner: str,
                 combine: t.Callable[[t.Iterable[bool]], bool],
                 left: Dependency,
                 right: Dependency):
        self.joiner = joiner
        self.combine = combine
        self.parts = (left, right)

    def __repr__(self):
        return '(' + self.joiner.join(repr(p) for p in self.parts) + ')'

    def __str__(self):
        return '(' + self.joiner.join(str(p) for p in self.parts) + ')'

    @property
    def satisfied(self):
        return self.combine(p.satisfied for p in self.parts)

    @property
    def needed(self):
        return any(p.needed for p in self.parts)

    @property
    def install_hint(self):
        hints = [p.install_hint for p in self.parts if p.needed]
        if self.combine is any:
            # Meeting either side is enough, so only suggest the first.
            return hints[0] if hints else ''
        return '; '.join(hints)


class PipDependency(Dependency):
    """
    A requirement on a pip-installable package. @check_name is the module
    name to look for, when it differs from the distribution name.
    """
    def __init__(self,
                 name: str,
                 source: str | None = None,
                 check_name: str | None = None):
        self.name = name
        self.source = source or name
        self.check_name = check_name or name

    def __str__(self):
        return self.name

    @property
    def satisfied(self):
        try:
            return importlib.util.find_spec(self.check_name) is not None
        except ImportError:
            return False

    @property
    def install_hint(self):
        return f'pip install {self.source}'


class WebExecDependency(Dependency):
    """
    A requirement on an executable that has to be installed by hand, usually
    from a website given as @source.
    """
    def __init__(self,
                 name: str,
                 source: str | None = None,
                 check_name: str | None = None):
        self.name = name
        self.source = source or name
        self.check_name = check_name or name

    def __str__(self):
        return self.name

    @property
    def satisfied(self):
        return bool(shutil.which(self.check_name))

    @property
    def install_hint(self):
        return self.source
