"""
Simple Steps, and base classes for text-transforming Steps and Steps that
invoke external command line tools.
"""
from __future__ import annotations

import abc
import contextlib
import shutil
import subprocess
import typing as t
from pathlib import Path

from .core import Step, StepFailedException
from .pretty_utils import log_tool_output

if t.TYPE_CHECKING:
    from _typeshed import StrOrBytesPath


class DirectCopyStep(Step):
    """
    Copies a file to each of its output paths unchanged.
    """
    def __call__(self, path: Path, output_paths: list[Path]):
        for target_path in output_paths:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(path, target_path)


class BaseStandardStep(Step):
    """
    Base class for Steps that write one output file and copy it to the rest.
    """
    encoding = 'utf-8'
    newline = '\n'

    def ensure_output_dirs(self, output_paths: list[Path]):
        for o_path in output_paths:
            o_path.parent.mkdir(parents=True, exist_ok=True)

    def duplicate_output_paths(self, output_paths: list[Path]):
        for o_path in output_paths[1:]:
            shutil.copy(output_paths[0], o_path)

    @contextlib.contextmanager
    def ensure_outputs(self, output_paths: list[Path]):
        self.ensure_output_dirs(output_paths)
        yield
        self.duplicate_output_paths(output_paths)

    def write_output(self, text: str, output_paths: list[Path]):
        """
        Write @text to the first output path and copy it to the others.
        """
        with self.ensure_outputs(output_paths):
            output_paths[0].write_text(text, self.encoding, newline=self.newline)


class TextTransformStep(BaseStandardStep):
    """
    Base class for Steps that read a text file, transform its contents, and
    write the result.
    """
    @abc.abstractmethod
    def transform(self, text: str, path: Path) -> str:
        """
        Return the transformed contents of @path.
        """

    def __call__(self, path: Path, output_paths: list[Path]):
        self.write_output(self.transform(path.read_text(self.encoding), path), output_paths)


class BaseCommandStep(Step):
    """
    Base class for Steps that run an external command to generate a file.
    The command runs in @cwd when it is set, which is where tools like `npx`
    look for the project's packages and configuration.
    """
    tool_name = 'command'
    cwd: Path | None = None

    @abc.abstractmethod
    def get_command(self, input_path: Path, output_path: Path) -> list[StrOrBytesPath]:
        """
        Return a command line ready for subprocess.
        """

    def run_command(self, input_path: Path, output_path: Path):
        """
        Run the command for one input and output, relaying whatever it
        prints. A non-zero exit status raises `StepFailedException`.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            output = subprocess.check_output(
                self.get_command(input_path, output_path),
                stderr=subprocess.STDOUT,
                cwd=self.cwd,
            )
        except subprocess.CalledProcessError as e:
            log_tool_output(self.tool_name, e.output or b'', style='red')
            raise StepFailedException(
                self, input_path, f'{self.tool_name} exited with status {e.returncode}'
            ) from e
        log_tool_output(self.tool_name, output)

    def __call__(self, path: Path, output_paths: list[Path]):
        if not output_paths:
            return
        self.run_command(path, output_paths[0])
        for o_path in output_paths[1:]:
            o_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(output_paths[0], o_path)
