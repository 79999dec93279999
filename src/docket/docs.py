"""
Steps for rendering the documentation site: Markdown pages rendered into
Jinja layouts.
"""
from __future__ import annotations

import typing as t
from pathlib import Path

from .components.md_frontmatter import FrontMatterFormat, FrontMatterParser, get_frontmatter_parser
from .dependencies import PipDependency
from .simple import BaseStandardStep

if t.TYPE_CHECKING:
    from jinja2 import Environment

LAYOUT_DIR = '_includes'


class JinjaRenderStep(BaseStandardStep):
    """
    Base class for Steps rendering Jinja templates. Templates are loaded from
    the `_includes` folder of the input directory unless a custom @env is
    given.
    """
    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('jinja2'),
        }

    def __init__(self,
                 env: Environment | None = None,
                 extra_globals: dict[str, t.Any] | None = None):
        if env and extra_globals:
            env.globals.update(extra_globals)
        self._env = env
        self._extra_globals = extra_globals

    @property
    def env(self):
        """
        The Jinja `Environment` for this Step, created on first use.
        """
        if self._env:
            return self._env

        from jinja2 import Environment, FileSystemLoader, select_autoescape
        self._env = Environment(
            loader=FileSystemLoader(self.context['input_dir'] / LAYOUT_DIR),
            autoescape=select_autoescape()
        )
        if self._extra_globals:
            self._env.globals.update(self._extra_globals)
        return self._env

    def render_template(self, template_name: str, meta: dict[str, t.Any], output_paths: list[Path]):
        """
        Render @template_name with @meta into @output_paths, returning the
        template's filename when it came from disk.
        """
        template = self.env.get_template(template_name)
        with self.ensure_outputs(output_paths):
            template.stream(**meta).dump(str(output_paths[0]), encoding=self.encoding)
        return template.filename


class MarkdownDocsStep(JinjaRenderStep):
    """
    Renders a Markdown page (CommonMark plus tables and strikethrough) into a
    Jinja layout.

    The layout is chosen by the page's `layout` (or `template`) front matter
    key, falling back to @default_layout. Layouts receive:

    - `content`: the rendered page, safe for direct output
    - `page`: a dict with the page's `url` and `input_path`
    - `package`: the values of @package_fields
    - every front matter key
    """
    @classmethod
    def get_dependencies(cls):
        return super().get_dependencies() | {
            PipDependency('markdown-it-py', check_name='markdown_it'),
            PipDependency('mdit-py-plugins', check_name='mdit_py_plugins'),
            PipDependency('Pygments', check_name='pygments'),
            PipDependency('ruamel.yaml', check_name='ruamel.yaml'),
        }

    def __init__(self,
                 default_layout: str | None = 'base.html',
                 package_fields: dict[str, str] | None = None,
                 jinja_env: Environment | None = None,
                 jinja_globals: dict[str, t.Any] | None = None,
                 *,
                 front_matter: FrontMatterFormat | FrontMatterParser = 'yaml',
                 auto_anchors: bool = True,
                 auto_typography: bool = True,
                 code_highlighting: bool = True,
                 pygments_params: dict[str, t.Any] | None = None):
        """
        :param default_layout: Layout for pages without one in their front
            matter.
        :param package_fields: Package metadata made available to layouts as
            `package`, and substituted into the Markdown wherever
            `${{ field }}` appears.
        :param front_matter: `'yaml'`, `'toml'`, `'simple'`, or a callable
            parsing front matter text into a dict.
        :param auto_anchors: Whether headings get `id` anchors.
        :param pygments_params: Parameters for
            `pygments.formatters.html.HtmlFormatter`.
        """
        super().__init__(jinja_env, jinja_globals)
        self.default_layout = default_layout
        self.package_fields = package_fields or {}
        self.front_matter = front_matter
        self.auto_anchors = auto_anchors
        self.auto_typography = auto_typography
        self.code_highlighting = code_highlighting
        self.pygments_params = pygments_params or {}
        self._md_processor: t.Callable[[str], tuple[str, dict[str, t.Any]]] | None = None

    def __repr__(self):
        return f'MarkdownDocsStep(default_layout={self.default_layout!r})'

    @property
    def md_processor(self):
        if not self._md_processor:
            self._md_processor = self._build_processor()
        return self._md_processor

    def apply_substitutions(self, text: str):
        """
        Replace `${{ field }}` placeholders with package values.
        """
        for field, value in self.package_fields.items():
            text = text.replace('${{ ' + field + ' }}', value)
        return text

    def highlight_code(self, code: str, lang: str, _lang_attrs: str):
        from pygments import highlight
        from pygments.formatters.html import HtmlFormatter
        from pygments.lexers import get_lexer_by_name
        from pygments.util import ClassNotFound
        if not lang:
            return ''
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            return ''
        return highlight(code, lexer, HtmlFormatter(**self.pygments_params))

    def page_url(self, output_path: Path):
        rel = output_path.relative_to(self.context['output_dir']).as_posix()
        if rel == 'index.html':
            return '/'
        if rel.endswith('/index.html'):
            return '/' + rel[:-len('index.html')]
        return '/' + rel

    def __call__(self, path: Path, output_paths: list[Path]):
        from markupsafe import Markup

        rendered, meta = self.md_processor(
            self.apply_substitutions(path.read_text(self.encoding).strip())
        )
        layout = meta.get('layout') or meta.get('template') or self.default_layout
        if not layout:
            raise ValueError(f'No layout given for {path}')

        meta |= {
            'content': Markup(rendered),
            'package': self.package_fields,
            'page': {
                'url': self.page_url(output_paths[0]) if output_paths else '',
                'input_path': path.relative_to(self.context['input_dir']).as_posix(),
            },
        }
        template_path = self.render_template(layout, meta, output_paths)
        if template_path:
            return [path, Path(template_path)], output_paths

    def _build_processor(self):
        import markdown_it
        from mdit_py_plugins.anchors import anchors_plugin
        from mdit_py_plugins.attrs import attrs_block_plugin, attrs_plugin
        from mdit_py_plugins.front_matter import front_matter_plugin
        from .components.md_rendering import DocsRendererHTML

        processor = markdown_it.MarkdownIt(
            'commonmark',
            {
                'typographer': self.auto_typography,
                'highlight': self.highlight_code if self.code_highlighting else None,
            },
            renderer_cls=DocsRendererHTML
        )
        processor.enable(['strikethrough', 'table'])
        if self.auto_typography:
            processor.enable(['smartquotes', 'replacements'])
        if self.auto_anchors:
            anchors_plugin(processor)
        attrs_plugin(processor)
        attrs_block_plugin(processor)
        front_matter_plugin(processor)
        t.cast(DocsRendererHTML, processor.renderer).set_front_matter_parser(
            get_frontmatter_parser(self.front_matter)
        )

        def convert(md_string: str):
            env: dict[str, t.Any] = {'docket_meta': {}}
            rendered_md: str = processor.render(md_string, env=env)
            return rendered_md, env['docket_meta']

        return convert
