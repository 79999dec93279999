from pathlib import Path

import pytest

from docket.components.md_frontmatter import get_frontmatter_parser
from docket.core import BuildSettings, Context, Rule
from docket.docs import MarkdownDocsStep
from docket.paths import REMatcher, WebIndexPathCalc


@pytest.fixture
def docs_settings(tmp_path: Path):
    settings = BuildSettings(
        input_dir=tmp_path / 'src',
        output_dir=tmp_path / 'docs',
        working_dir=tmp_path / 'working',
        custody_cache=None,
        purge_dirs=False,
    )
    layouts = settings['input_dir'] / '_includes'
    layouts.mkdir(parents=True)
    (layouts / 'base.html').write_text(
        '<title>{{ title }}</title><p>{{ page.url }}</p>{{ content }}<footer>{{ package.version }}</footer>'
    )
    (layouts / 'plain.html').write_text('{{ content }}')
    return settings


def render(settings: BuildSettings, name: str, text: str, step: MarkdownDocsStep | None = None):
    source = settings['input_dir'] / name
    source.parent.mkdir(parents=True, exist_ok=True)
    source.write_text(text)
    step = step or MarkdownDocsStep('base.html', {'name': 'rivet-sample', 'version': '0.3.1'})
    context = Context(settings, [
        Rule(REMatcher(r'.*\.md', parent_dir='input_dir'), WebIndexPathCalc('output_dir', '.html'), step),
    ])
    context.run([source])
    return step


def test_markdown_docs_step(docs_settings: BuildSettings):
    render(docs_settings, 'guide/setup.md', '---\ntitle: Setup\n---\n# Install ${{ name }}\n\nUse <b>it</b>.\n')

    html = (docs_settings['output_dir'] / 'guide' / 'setup' / 'index.html').read_text()
    assert '<title>Setup</title>' in html
    assert '<p>/guide/setup/</p>' in html
    assert '<h1 id="install-rivet-sample">Install rivet-sample</h1>' in html
    assert '<footer>0.3.1</footer>' in html


def test_markdown_docs_step_layout_front_matter(docs_settings: BuildSettings):
    render(docs_settings, 'index.md', '---\nlayout: plain.html\n---\nHello\n')
    html = (docs_settings['output_dir'] / 'index.html').read_text()
    assert html.strip() == '<p>Hello</p>'


def test_markdown_docs_step_highlighting(docs_settings: BuildSettings):
    render(docs_settings, 'code.md', '```js\nconst a = 1;\n```\n')
    html = (docs_settings['output_dir'] / 'code' / 'index.html').read_text()
    assert 'class="highlight"' in html


def test_markdown_docs_step_plain_fence(docs_settings: BuildSettings):
    render(docs_settings, 'code.md', '```\n<b>x</b>\n```\n')
    html = (docs_settings['output_dir'] / 'code' / 'index.html').read_text()
    assert '<pre><code>&lt;b&gt;x&lt;/b&gt;\n</code></pre>' in html


def test_markdown_docs_step_toml_front_matter(docs_settings: BuildSettings):
    step = MarkdownDocsStep('base.html', front_matter='toml')
    render(docs_settings, 'index.md', '---\ntitle = "From TOML"\n---\nBody\n', step)
    html = (docs_settings['output_dir'] / 'index.html').read_text()
    assert '<title>From TOML</title>' in html
    assert '<p>/</p>' in html


def test_markdown_docs_step_sources(docs_settings: BuildSettings):
    step = MarkdownDocsStep('base.html')
    source = docs_settings['input_dir'] / 'index.md'
    source.write_text('Body\n')
    step.bind(Context(docs_settings, []))
    docs_settings['output_dir'].mkdir()
    sources, outputs = step(source, [docs_settings['output_dir'] / 'index.html'])
    assert sources == [source, docs_settings['input_dir'] / '_includes' / 'base.html']
    assert outputs == [docs_settings['output_dir'] / 'index.html']


@pytest.mark.parametrize('front_matter,text,expected', [
    ('simple', 'title: Setup\nlayout: plain.html\n# not a key\nignored: yes', {'title': 'Setup', 'layout': 'plain.html'}),
    ('toml', 'title = "Setup"\norder = 2', {'title': 'Setup', 'order': 2}),
    ('yaml', 'title: Setup\ntags: [a, b]', {'title': 'Setup', 'tags': ['a', 'b']}),
    ('yaml', '', {}),
])
def test_front_matter_formats(front_matter, text: str, expected: dict):
    assert get_frontmatter_parser(front_matter)(text) == expected


def test_yaml_front_matter_must_be_a_mapping():
    with pytest.raises(ValueError, match='mapping'):
        get_frontmatter_parser('yaml')('- just\n- a list\n')
