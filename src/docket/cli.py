"""
The `docket` command line interface.
"""
from __future__ import annotations

import argparse
import sys
import typing as t
from pathlib import Path

from .config import ConfigError, Project, load_project
from .core import Step, StepFailedException, StepUnavailableException
from .pipelines import build_docs, docs_rules, release, release_rules
from .pretty_utils import print_with_style


DEFAULT_COMMAND = 'dev'


def pprint_step(step: t.Type[Step]):
    """
    Prettily display dependency information for the given Step class.
    """
    missing = [
        f'{d}: {d.install_hint}' for d in step.get_dependencies()
        if d.needed and not d.satisfied
    ]
    if missing:
        text = ', '.join(missing)
        print_with_style(f'✗ {step.__name__} (missing: {text})', style='red')
    else:
        print_with_style(f'✓ {step.__name__}', style='green')


def pprint_missing_deps(step: Step):
    """
    Prettily display an error for a Step with missing dependencies.
    """
    print_with_style(
        f'{step} is unavailable due to missing dependencies!',
        file='stderr',
        style='red'
    )
    for dep in step.get_dependencies():
        if not dep.needed:
            print_with_style(f'✓ {dep}')
        elif dep.satisfied:
            print_with_style(f'✓ {dep}', style='green')
        else:
            print_with_style(f'✗ {dep}: {dep.install_hint}', style='red')


def audit(project: Project):
    """
    Show which Steps can run here and which ones the pipelines use.
    """
    used_steps = {
        r.step.__class__
        for rules in (docs_rules(project), release_rules(project))
        for r in rules if r.step
    }
    all_steps = set(Step.get_all_steps())
    available_steps = set(Step.get_available_steps())

    groups = {
        'Available steps': available_steps,
        'Unavailable steps': all_steps - available_steps,
        'Used steps': used_steps,
    }
    for label, step_group in groups.items():
        print_with_style(f'{label} ({len(step_group)})')
        for step in sorted(step_group, key=lambda s: s.__name__):
            pprint_step(step)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='docket',
        description='Build the docs site and release assets of a front-end project.'
    )
    parser.add_argument('-C', '--directory',
                        help='project directory; defaults to the current directory',
                        type=Path,
                        default=Path('.'))
    parser.add_argument('-c', '--config',
                        help='settings file; defaults to docket.toml in the project directory',
                        type=Path,
                        default=None)

    # `docket --port 4000` runs the dev server like `docket dev --port 4000`.
    _add_dev_arguments(parser, host=None, port=None, open_browser=False)
    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    parser.set_defaults(command=DEFAULT_COMMAND)

    dev = subparsers.add_parser('dev', help='build the docs site, serve it, and rebuild on changes')
    # Suppressed defaults keep values given before the command name.
    _add_dev_arguments(dev, host=argparse.SUPPRESS, port=argparse.SUPPRESS, open_browser=argparse.SUPPRESS)

    for name, help_text in [
        ('build-docs', 'build the docs site, stylesheets, and scripts into the docs directory'),
        ('release', 'build prefixed, minified, and banner-stamped assets into the dist directory'),
    ]:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('--purge',
                         help='empty the output directory before building; '
                              'by default only outputs whose sources are gone are removed',
                         action=argparse.BooleanOptionalAction,
                         default=None)

    subparsers.add_parser('audit', help='show available, unavailable, and used steps')
    return parser


def _add_dev_arguments(parser: argparse.ArgumentParser, host: t.Any, port: t.Any, open_browser: t.Any):
    parser.add_argument('--host', help='host to serve from', default=host)
    parser.add_argument('-p', '--port', help='port to serve from', type=int, default=port)
    parser.add_argument('--open',
                        help='open a browser once the server is up',
                        action='store_true',
                        dest='open_browser',
                        default=open_browser)


def main(arguments: list[str] | None = None):
    """
    docket main function. Loads the project and runs the requested command,
    `dev` when none is given.
    """
    args = build_parser().parse_args(arguments)

    try:
        project = load_project(args.directory, args.config)
        if args.command == 'audit':
            audit(project)
        elif args.command == 'build-docs':
            build_docs(project, purge=args.purge)
        elif args.command == 'release':
            release(project, purge=args.purge)
        else:
            from .devserver import develop
            develop(project, args.host, args.port, args.open_browser)
    except ConfigError as e:
        print_with_style(str(e), file='stderr', style='red')
        sys.exit(1)
    except StepUnavailableException as e:
        pprint_missing_deps(e.step)
        sys.exit(1)
    except StepFailedException as e:
        print_with_style(f'Build failed: {e}', file='stderr', style='red')
        sys.exit(1)


if __name__ == '__main__':
    main()
