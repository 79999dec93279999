"""
The build pipelines: rule sets for the docs site, the compiled assets, and
the release artifacts, and functions to run them for a project.
"""
from __future__ import annotations

import re
from pathlib import Path

from .banner import BannerStep
from .bundle import RollupStep
from .config import ConfigError, Project
from .core import BuildSettings, Context, Rule, Step
from .custody import Custodian
from .docs import LAYOUT_DIR, MarkdownDocsStep
from .minify import CSSMinifierStep, CSSPrefixStep, JSMinifierStep
from .paths import OutputDirPathCalc, REMatcher, StageDirPathCalc, WebIndexPathCalc
from .scss import SassStep
from .simple import DirectCopyStep


SASS_DIR = 'sass'
JS_DIR = 'js'
CSS_DIR = 'css'

PREFIXED_STAGE = 'prefixed'
MINIFIED_STAGE = 'minified'

_DOTFILE = r'(.*/)?\..*'


def _swap_top_dir(new_top: str):
    def transform(path: Path):
        return Path(new_top, *path.parts[1:])
    return transform


def ignore_dotfiles():
    return Rule(
        REMatcher(_DOTFILE, parent_dir='input_dir') | REMatcher(_DOTFILE, parent_dir='working_dir'),
        None
    )


def default_bundler(project: Project):
    """
    The Rollup Step configured by the project's settings.
    """
    settings = project.settings
    return RollupStep(
        project.package.addon_name,
        sourcemap=settings['sourcemap'],
        plugins=settings['rollup_plugins'],
        command=settings['rollup_command'],
        cwd=project.root,
    )


def asset_rules(project: Project, bundler: Step | None = None):
    """
    Rules compiling `sass/**.scss` into `css/**.css` and bundling
    `js/<name>.js`. Sass partials and the modules the bundle imports are not
    processed on their own.
    """
    name = re.escape(project.package.basename)
    return [
        ignore_dotfiles(),
        Rule(REMatcher(rf'{SASS_DIR}/(.*/)?_[^/]*\.scss', parent_dir='input_dir'), None),
        Rule(
            REMatcher(rf'{SASS_DIR}/.*\.scss', parent_dir='input_dir'),
            [OutputDirPathCalc('.css', transform=_swap_top_dir(CSS_DIR)), None],
            SassStep(
                project.settings['sass_output_style'],
                include_paths=project.sass_include_paths
            )
        ),
        Rule(
            REMatcher(rf'{JS_DIR}/{name}\.js', parent_dir='input_dir'),
            [OutputDirPathCalc(), None],
            bundler or default_bundler(project)
        ),
        Rule(REMatcher(rf'({SASS_DIR}|{JS_DIR})/.*', parent_dir='input_dir'), None),
    ]


def docs_rules(project: Project, bundler: Step | None = None, renderer: Step | None = None):
    """
    Rules for the whole docs site: compiled assets, Markdown pages rendered
    with the layouts in `_includes/`, and everything else copied through.
    """
    fields = project.package.as_dict()
    return [
        *asset_rules(project, bundler),
        Rule(REMatcher(rf'{LAYOUT_DIR}/.*', parent_dir='input_dir'), None),
        Rule(
            REMatcher(r'.*\.md', parent_dir='input_dir'),
            [WebIndexPathCalc('output_dir', '.html'), None],
            renderer or MarkdownDocsStep(project.settings['default_layout'], fields)
        ),
        Rule(REMatcher(r'.*', parent_dir='input_dir'), OutputDirPathCalc(), DirectCopyStep()),
    ]


def release_rules(project: Project):
    """
    Rules turning the compiled assets in the docs directory into release
    artifacts. The main stylesheet is prefixed, then minified; the main
    script is minified; both plain and minified files get the banner, which
    always goes on last. Any other CSS and JS, sourcemaps included, is
    copied unchanged.
    """
    name = re.escape(project.package.basename)
    browsers = project.settings['browsers']
    banner = BannerStep.for_project(project)
    main_css = rf'{CSS_DIR}/{name}\.css'
    main_js = rf'{JS_DIR}/{name}\.js'
    return [
        ignore_dotfiles(),
        Rule(
            REMatcher(main_css, parent_dir='input_dir'),
            [StageDirPathCalc(PREFIXED_STAGE), None],
            CSSPrefixStep(browsers)
        ),
        Rule(
            REMatcher(rf'{PREFIXED_STAGE}/{main_css}', parent_dir='working_dir'),
            StageDirPathCalc(MINIFIED_STAGE, ext='.min.css'),
            CSSMinifierStep(browsers)
        ),
        Rule(
            REMatcher(rf'{PREFIXED_STAGE}/{main_css}', parent_dir='working_dir'),
            [StageDirPathCalc(None, 'output_dir'), None],
            banner
        ),
        Rule(
            REMatcher(main_js, parent_dir='input_dir'),
            StageDirPathCalc(MINIFIED_STAGE, ext='.min.js'),
            JSMinifierStep()
        ),
        Rule(
            REMatcher(main_js, parent_dir='input_dir'),
            [OutputDirPathCalc(), None],
            banner
        ),
        Rule(
            REMatcher(rf'{MINIFIED_STAGE}/.*', parent_dir='working_dir'),
            [StageDirPathCalc(None, 'output_dir'), None],
            banner
        ),
        Rule(
            REMatcher(rf'({CSS_DIR}|{JS_DIR})/.*', parent_dir='input_dir'),
            OutputDirPathCalc(),
            DirectCopyStep()
        ),
    ]


def make_context(project: Project,
                 pipeline: str,
                 input_dir: Path,
                 output_dir: Path,
                 rules: list[Rule],
                 purge: bool | None = False):
    """
    Create a Context for one pipeline, with its own custody cache and working
    directory inside the project's cache directory. The project's
    fingerprint is part of the custody records, so changed metadata or
    settings rebuild everything.

    @purge empties the output directory first when True; when None, outputs
    no longer produced by any source are removed after the build.
    """
    if not input_dir.is_dir():
        raise ConfigError(f'Input directory {input_dir} does not exist')
    cache_dir = project.cache_dir / pipeline
    settings = BuildSettings(
        input_dir=input_dir,
        output_dir=output_dir,
        working_dir=cache_dir / 'working',
        custody_cache=cache_dir / 'custody.json',
        purge_dirs=purge,
    )
    return Context(settings, rules, Custodian(project.fingerprint()))


def docs_context(project: Project,
                 purge: bool | None = None,
                 bundler: Step | None = None,
                 renderer: Step | None = None):
    return make_context(
        project, 'docs', project.src_dir, project.docs_dir,
        docs_rules(project, bundler, renderer), purge
    )


def build_docs(project: Project,
               purge: bool | None = None,
               bundler: Step | None = None,
               renderer: Step | None = None):
    """
    Build the docs site into the docs directory.
    """
    context = docs_context(project, purge, bundler, renderer)
    context.run()
    return context


def build_assets(project: Project, bundler: Step | None = None):
    """
    Compile stylesheets and the script bundle into the docs directory. The
    docs directory also holds the rendered site, so it is never purged.
    """
    context = make_context(
        project, 'assets', project.src_dir, project.docs_dir,
        asset_rules(project, bundler), purge=False
    )
    context.run()
    return context


def release(project: Project, purge: bool | None = None, bundler: Step | None = None):
    """
    Compile assets, then produce the prefixed, minified, and banner-stamped
    distributables in the dist directory.
    """
    build_assets(project, bundler)
    context = make_context(
        project, 'release', project.docs_dir, project.dist_dir,
        release_rules(project), purge
    )
    context.run()
    return context
