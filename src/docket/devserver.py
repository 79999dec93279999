"""
Development mode: build the docs site, serve it with live reload, and
rebuild whenever the sources or the project's metadata change.
"""
from __future__ import annotations

import typing as t

from .config import PACKAGE_FILE, ConfigError, Project, load_project
from .core import Step, StepFailedException
from .pipelines import docs_context
from .pretty_utils import print_with_style


class Rebuilder:
    """
    Callable used as the livereload watch callback. Every call reloads the
    project, so edits to `package.json` or the settings file are picked up,
    and builds the docs site incrementally in a fresh Context. Build failures
    are reported without stopping the server.
    """
    def __init__(self, project: Project, bundler: Step | None = None, renderer: Step | None = None):
        self.project = project
        self.bundler = bundler
        self.renderer = renderer
        self.failures = 0

    def fail(self, message: str):
        self.failures += 1
        print_with_style(f'Build failed: {message}', file='stderr', style='red')
        return False

    def __call__(self) -> bool:
        from jinja2 import TemplateNotFound
        try:
            self.project = load_project(self.project.root, self.project.config_file)
            docs_context(self.project, bundler=self.bundler, renderer=self.renderer).run()
        except (ConfigError, StepFailedException) as e:
            return self.fail(str(e))
        except TemplateNotFound as e:
            return self.fail(f'layout {e.name!r} not found')
        print_with_style('Build complete', style='green')
        return True


def watched_paths(project: Project):
    """
    The source tree plus the files project metadata is read from.
    """
    paths = [project.src_dir, project.root / PACKAGE_FILE]
    if project.config_file:
        paths.append(project.config_file)
    return paths


def create_server(project: Project, rebuild: t.Callable[[], t.Any]):
    """
    Create a livereload `Server` that runs @rebuild when anything it watches
    changes, and reloads browsers when it finishes.
    """
    from livereload import Server

    server = Server()
    for path in watched_paths(project):
        server.watch(str(path), rebuild, delay=project.settings['reload_delay'])
    return server


def develop(project: Project,
            host: str | None = None,
            port: int | None = None,
            open_browser: bool = False,
            bundler: Step | None = None):
    """
    Build the docs site once, then serve it with live reload until
    interrupted.
    """
    host = host or project.settings['host']
    port = port or project.settings['port']

    rebuild = Rebuilder(project, bundler=bundler)
    rebuild()

    server = create_server(project, rebuild)
    print_with_style(f'Serving {project.docs_dir} at http://{host}:{port}', style='green')
    server.serve(
        root=str(project.docs_dir),
        host=host,
        port=port,
        open_url_delay=0 if open_browser else None,
    )
