"""
Console output helpers: progress bars, styled printing, and relaying the
output of external tools.
"""
import typing as t

import rich.console
import rich.progress
from rich.markup import escape


T = t.TypeVar('T')

_consoles = {
    'stdout': rich.console.Console(),
    'stderr': rich.console.Console(stderr=True),
}


def track_progress(iterable: t.Iterable[T], desc: str) -> t.Iterable[T]:
    """
    Wrap @iterable in a rich progress bar labelled with @desc.
    """
    yield from rich.progress.track(iterable, desc, console=_consoles['stdout'])


def print_with_style(*args, sep=' ', end='\n', file: str = 'stdout', style=None):
    """
    print() replacement writing to a rich console, with an optional style.
    Arguments are printed literally, without rich markup processing.
    """
    _consoles[file].print(*(escape(str(a)) for a in args), sep=sep, end=end, style=style, soft_wrap=True)


def log_tool_output(tool: str, output: str | bytes, style=None):
    """
    Print each non-blank line of an external tool's @output, prefixed with
    the @tool name.
    """
    if isinstance(output, bytes):
        output = output.decode('utf-8', errors='replace')
    for line in output.splitlines():
        if line.strip():
            print_with_style(f'{tool}: {line}', style=style)
