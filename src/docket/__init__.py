"""
docket builds the documentation site and release assets of a front-end
project by wiring Sass, Rollup, lightningcss, rjsmin, and Jinja-rendered
Markdown into rule-based pipelines.
"""
from .banner import BannerStep, render_banner
from .bundle import RollupStep
from .config import ConfigError, PackageInfo, Project, load_project
from .core import (
    BuildSettings, Context, InputBuildSettings, Matcher, PathCalc, Rule, Step,
    StepFailedException, StepUnavailableException,
)
from .custody import Custodian
from .dependencies import Dependency, PipDependency, WebExecDependency
from .docs import JinjaRenderStep, MarkdownDocsStep
from .minify import CSSMinifierStep, CSSPrefixStep, JSMinifierStep
from .paths import DirPathCalc, OutputDirPathCalc, REMatcher, StageDirPathCalc, WebIndexPathCalc, WorkingDirPathCalc
from .pipelines import asset_rules, build_assets, build_docs, docs_rules, release, release_rules
from .scss import SassStep
from .simple import BaseCommandStep, BaseStandardStep, DirectCopyStep, TextTransformStep
