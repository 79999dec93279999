"""
Project configuration: package metadata from `package.json`, and build
settings from an optional `docket.toml`.
"""
from __future__ import annotations

import datetime
import json
import re
import sys
import typing as t
from pathlib import Path

if sys.version_info < (3, 11):
    import tomli as tomllib
else:
    import tomllib


PACKAGE_FILE = 'package.json'
CONFIG_FILE = 'docket.toml'

DEFAULT_BANNER = '''/*!
* {name} - @version {version}

* Copyright (C) {year} {copyright_holder}
* SPDX-License-Identifier: {license}
*/

'''


class ConfigError(Exception):
    """
    Raised when project metadata or settings are missing or invalid.
    """


class ProjectSettings(t.TypedDict, total=False):
    """
    TypedDict for the settings accepted in `docket.toml`.
    """
    src_dir: str
    docs_dir: str
    dist_dir: str
    cache_dir: str
    browsers: list[str]
    banner: str
    copyright_holder: str
    copyright_year: int | str
    default_layout: str
    sass_output_style: str
    sass_include_paths: list[str]
    rollup_command: list[str]
    rollup_plugins: list[str]
    sourcemap: bool
    host: str
    port: int
    reload_delay: float


SERVER_SETTINGS = frozenset({'host', 'port', 'reload_delay'})

DEFAULT_SETTINGS = ProjectSettings(
    src_dir='src',
    docs_dir='docs',
    dist_dir='dist',
    cache_dir='.docket-cache',
    browsers=['last 2 versions'],
    banner=DEFAULT_BANNER,
    default_layout='base.html',
    sass_output_style='expanded',
    sass_include_paths=[],
    rollup_command=['npx', 'rollup'],
    rollup_plugins=["babel={babelHelpers: 'runtime'}"],
    sourcemap=True,
    host='localhost',
    port=3000,
    reload_delay=0.5,
)


def camel_case(name: str):
    """
    Turn a package name like `rivet-collapsible` into `rivetCollapsible`.
    """
    words = [w for w in re.split(r'[^0-9A-Za-z]+', name.rsplit('/', 1)[-1]) if w]
    if not words:
        return name
    return words[0] + ''.join(w[:1].upper() + w[1:] for w in words[1:])


class PackageInfo:
    """
    The metadata used for naming bundles and stamping banners.
    """
    def __init__(self,
                 name: str,
                 version: str,
                 addon_name: str | None = None,
                 license: str | None = None,
                 author: str | None = None):
        self.name = name
        self.version = version
        self.addon_name = addon_name or camel_case(name)
        self.license = license or 'UNLICENSED'
        self.author = author or ''

    def __repr__(self):
        return f'PackageInfo({self.name!r}, {self.version!r})'

    @property
    def basename(self):
        """
        The file stem used for bundles; scoped names lose their scope.
        """
        return self.name.rsplit('/', 1)[-1]

    def as_dict(self) -> dict[str, str]:
        return {
            'name': self.name,
            'version': self.version,
            'addon_name': self.addon_name,
            'license': self.license,
            'author': self.author,
        }

    @classmethod
    def from_mapping(cls, data: t.Mapping[str, t.Any], source: str = PACKAGE_FILE):
        """
        Build a PackageInfo from `package.json`-style data.
        """
        missing = [key for key in ('name', 'version') if not data.get(key)]
        if missing:
            raise ConfigError(f'{source} is missing {", ".join(missing)}')

        author = data.get('author')
        if isinstance(author, dict):
            author = author.get('name')

        return cls(
            str(data['name']),
            str(data['version']),
            addon_name=data.get('addOnName') or data.get('addon_name'),
            license=data.get('license'),
            author=author,
        )


class Project:
    """
    A loaded project: its root, package metadata, and resolved settings.
    """
    def __init__(self,
                 root: Path,
                 package: PackageInfo,
                 settings: ProjectSettings | None = None,
                 config_file: Path | None = None):
        self.root = root
        self.package = package
        self.config_file = config_file
        self.settings = ProjectSettings(**DEFAULT_SETTINGS)
        if settings:
            self.settings.update(settings)

    def __repr__(self):
        return f'Project({self.root!s}, {self.package!r})'

    def _dir(self, key: t.Literal['src_dir', 'docs_dir', 'dist_dir', 'cache_dir']):
        return self.root / self.settings[key]

    @property
    def src_dir(self):
        return self._dir('src_dir')

    @property
    def docs_dir(self):
        return self._dir('docs_dir')

    @property
    def dist_dir(self):
        return self._dir('dist_dir')

    @property
    def cache_dir(self):
        return self._dir('cache_dir')

    @property
    def sass_include_paths(self):
        return [self.root / p for p in self.settings['sass_include_paths']]

    def banner_fields(self) -> dict[str, str]:
        """
        Fields available to the banner template.
        """
        fields = self.package.as_dict()
        fields['copyright_holder'] = self.settings.get('copyright_holder') or self.package.author
        fields['year'] = str(self.settings.get('copyright_year') or datetime.date.today().year)
        return fields

    def fingerprint(self) -> dict[str, t.Any]:
        """
        What the outputs depend on besides their sources: package metadata
        with the banner fields, plus the build settings. Dev server settings
        are left out.
        """
        return {
            'package': self.banner_fields(),
            'settings': {k: v for k, v in self.settings.items() if k not in SERVER_SETTINGS},
        }


def _read_toml(path: Path) -> dict[str, t.Any]:
    try:
        with path.open('rb') as file:
            return tomllib.load(file)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f'{path} is not valid TOML: {e}') from e


def _read_package_json(path: Path) -> dict[str, t.Any]:
    try:
        return json.loads(path.read_text('utf-8'))
    except json.JSONDecodeError as e:
        raise ConfigError(f'{path} is not valid JSON: {e}') from e


def load_project(root: Path, config_file: Path | None = None):
    """
    Load a project rooted at @root. Settings come from @config_file, or from
    `docket.toml` in @root if it exists; package metadata comes from
    `package.json`, overridden by a `[package]` table in the settings file.
    """
    root = root.resolve()
    if config_file is None and (root / CONFIG_FILE).exists():
        config_file = root / CONFIG_FILE
    elif config_file is not None and not config_file.exists():
        raise ConfigError(f'Config file {config_file} does not exist')

    raw = _read_toml(config_file) if config_file else {}
    package_overrides = raw.pop('package', {})

    unknown = set(raw) - set(ProjectSettings.__annotations__)
    if unknown:
        raise ConfigError(f'Unknown settings in {config_file}: {", ".join(sorted(unknown))}')

    package_path = root / PACKAGE_FILE
    package_data = _read_package_json(package_path) if package_path.exists() else {}
    if not package_data and not package_overrides:
        raise ConfigError(f'No {PACKAGE_FILE} or [package] table found for {root}')
    package_data.update(package_overrides)

    return Project(
        root,
        PackageInfo.from_mapping(package_data),
        t.cast(ProjectSettings, raw),
        config_file=config_file,
    )
