"""
Build records for incremental rebuilds.

Every run saves, per output file, the sources it was built from, along with a
record (sha1, mtime and size) of each file involved and a fingerprint of the
project: the docket version, package metadata and build settings. On the next
run a Step is skipped when its record still holds, so a change to any source,
output or project metadata causes a rebuild.
"""
from __future__ import annotations

import hashlib
import json
import typing as t
from importlib.metadata import version
from pathlib import Path

from .pretty_utils import print_with_style

if t.TYPE_CHECKING:
    from collections.abc import Sequence
    from .core import Context, ContextDir


CONTEXT_DIR_KEYS: set[ContextDir] = {'input_dir', 'output_dir', 'working_dir'}

FileRecord = t.TypedDict('FileRecord', {'sha1': str, 'mtime': float, 'size': int})


def checksum(path: Path, _bufsize=2**18):
    """
    sha1 of a file's contents. Directories have an empty checksum.
    """
    if path.is_dir():
        return ''
    digest = hashlib.sha1()
    with path.open('rb') as file:
        while chunk := file.read(_bufsize):
            digest.update(chunk)
    return digest.hexdigest()


def file_record(path: Path) -> FileRecord:
    stat = path.stat()
    return {'sha1': checksum(path), 'mtime': stat.st_mtime, 'size': stat.st_size}


class Custodian:
    """
    Keeps the build records for one pipeline. @fingerprint describes what
    else the outputs depend on besides their sources; it must be JSON
    serializable.
    """
    encoding = 'utf-8'
    context: Context

    def __init__(self, fingerprint: dict[str, t.Any] | None = None):
        # Round-trip through JSON so comparing with a loaded file is exact.
        self.fingerprint: dict[str, t.Any] = json.loads(json.dumps({
            'docket_version': version('docket'),
            **(fingerprint or {}),
        }))
        self.fingerprint_changed = True

        # output key: {source key: [sibling output keys]}
        self.builds: dict[str, dict[str, list[str]]] = {}
        self.prior_builds: dict[str, dict[str, list[str]]] = {}

        self.files: dict[str, FileRecord] = {}
        self.prior_files: dict[str, FileRecord] = {}

    def bind(self, context: Context):
        self.context = context

    def key_for(self, path: Path):
        """
        The record key for @path: relative to the Context directory holding
        it, like `output_dir/css/site.css`. Other paths keep their absolute
        form.
        """
        for dir_key in CONTEXT_DIR_KEYS:
            parent = self.context[dir_key]
            if path.is_relative_to(parent):
                return (dir_key / path.relative_to(parent)).as_posix()
        return path.as_posix()

    def path_for(self, key: str):
        """
        Inverse of `key_for()`.
        """
        path = Path(key)
        if path.parts and path.parts[0] in CONTEXT_DIR_KEYS:
            dir_key = t.cast('ContextDir', path.parts[0])
            return self.context[dir_key].joinpath(*path.parts[1:])
        return path

    def get_all_paths(self):
        """
        Every output recorded during this run.
        """
        return (self.path_for(key) for key in self.builds)

    def load_file(self, path: Path):
        if not path.exists():
            return
        data = json.loads(path.read_text(self.encoding))
        self.fingerprint_changed = data.get('fingerprint') != self.fingerprint
        self.prior_builds = data.get('builds', {})
        self.prior_files = data.get('files', {})

    def dump_file(self, path: Path):
        data = {
            'fingerprint': self.fingerprint,
            'builds': self.builds,
            'files': self.files,
        }
        path.write_text(json.dumps(data, indent=2), self.encoding)

    def unchanged(self, key: str):
        """
        Whether the file behind @key still matches its prior record.
        """
        record = self.prior_files.get(key)
        if record is None:
            return False
        path = self.path_for(key)
        return path.exists() and checksum(path) == record['sha1']

    def refresh_needed(self, source: Path, outputs: list[Path]):
        """
        Decide whether a Step must run for @source and @outputs.

        :return: Whether to run the Step, and the reason.
        """
        if self.fingerprint_changed:
            return True, 'Project changed'
        if not outputs:
            return True, 'No outputs'
        for path in outputs:
            if not path.exists():
                return True, f'Missing output ({path})'

        if self.key_for(source) not in self.prior_builds.get(self.key_for(outputs[0]), {}):
            return True, f'New source ({source})'

        prior_sources: set[str] = set()
        for path in outputs:
            prior_sources.update(self.prior_builds.get(self.key_for(path), ()))

        for key in sorted(prior_sources):
            if not self.unchanged(key):
                return True, f'Changed source ({key})'
        for key in self.prior_outputs(source, outputs):
            if not self.unchanged(key):
                return True, f'Changed output ({key})'

        return False, 'Up to date'

    def prior_outputs(self, source: Path, outputs: list[Path]) -> list[str]:
        """
        Keys of every output the last run built from @source alongside the
        first of @outputs, sidecar files included.
        """
        return self.prior_builds[self.key_for(outputs[0])][self.key_for(source)]

    def add_step(self, sources: Sequence[Path], outputs: Sequence[Path], reason: str):
        """
        Record a Step that ran.
        """
        self.log_step(sources, outputs, reason)
        output_keys = [self.key_for(p) for p in outputs]
        for path, key in zip(outputs, output_keys):
            self.files[key] = file_record(path)
        for source in sources:
            source_key = self.key_for(source)
            self.files[source_key] = file_record(source)
            for key in output_keys:
                self.builds.setdefault(key, {})[source_key] = output_keys

    def skip_step(self, source: Path, outputs: list[Path]):
        """
        Carry the records of a skipped Step forward, returning every output
        it had produced.
        """
        output_keys = self.prior_outputs(source, outputs)
        self.log_step([source], [self.path_for(k) for k in output_keys])
        for key in output_keys:
            sources = self.prior_builds[key]
            self.builds.setdefault(key, {}).update(sources)
            self.files[key] = self.prior_files[key]
            for source_key in sources:
                self.files.setdefault(source_key, self.prior_files[source_key])
        return [self.path_for(k) for k in output_keys]

    def log_step(self, sources: Sequence[Path], outputs: Sequence[Path], reason: str | None = None):
        arrow = f'{", ".join(map(str, sources))} ⇒ {", ".join(map(str, outputs))}'
        if reason:
            print_with_style(f'{reason}: {arrow}')
        else:
            print_with_style('Skipped', arrow, style='yellow')
