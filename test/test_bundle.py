import sys
from pathlib import Path

import pytest

from docket.bundle import RollupStep
from docket.config import Project
from docket.core import StepFailedException
from docket.pipelines import default_bundler

from conftest import FakeRollupStep


@pytest.fixture
def js_dir(tmp_path: Path):
    js_dir = tmp_path / 'js'
    (js_dir / 'lib').mkdir(parents=True)
    (js_dir / 'site.js').write_text("import { a } from './lib/a';\nexport default a;\n")
    (js_dir / 'lib' / 'a.js').write_text('export const a = 1;\n')
    return js_dir


def test_rollup_command():
    step = RollupStep('Site')
    command = step.get_command(Path('src/js/site.js'), Path('docs/js/site.js'))
    assert command == [
        'npx', 'rollup', Path('src/js/site.js'),
        '--file', Path('docs/js/site.js'),
        '--format', 'umd',
        '--name', 'Site',
        '--sourcemap',
        '--plugin', "babel={babelHelpers: 'runtime'}",
    ]


def test_rollup_command_options():
    step = RollupStep('Site', output_format='iife', sourcemap=False, plugins=(), command=['rollup'])
    command = step.get_command(Path('a.js'), Path('b.js'))
    assert command == ['rollup', Path('a.js'), '--file', Path('b.js'), '--format', 'iife', '--name', 'Site']


def test_rollup_step_outputs(js_dir: Path, tmp_path: Path, fake_bundler: RollupStep):
    outputs = [tmp_path / 'docs' / 'js' / 'site.js', tmp_path / 'working' / 'site.js']
    sources, all_outputs = fake_bundler(js_dir / 'site.js', outputs)

    assert sources == [js_dir / 'site.js', js_dir / 'lib' / 'a.js']
    assert all_outputs == [
        outputs[0],
        outputs[1],
        outputs[0].with_name('site.js.map'),
        outputs[1].with_name('site.js.map'),
    ]
    for path in all_outputs:
        assert path.exists()
    assert 'global.RivetSample' in outputs[1].read_text()


def test_rollup_step_failure(js_dir: Path, tmp_path: Path, fake_bundler: RollupStep):
    broken = js_dir / 'site.js'
    broken.write_text('this is a syntax error\n')
    with pytest.raises(StepFailedException) as exc_info:
        fake_bundler(broken, [tmp_path / 'out.js'])
    assert exc_info.value.path == broken
    assert 'status 1' in exc_info.value.message


def test_rollup_step_nonzero_exit(js_dir: Path, tmp_path: Path):
    step = RollupStep('Site', command=[sys.executable, '-c', 'import sys; sys.exit(2)'])
    with pytest.raises(StepFailedException, match='status 2'):
        step(js_dir / 'site.js', [tmp_path / 'out.js'])


def test_rollup_runs_in_project_root(js_dir: Path,
                                     tmp_path: Path,
                                     fake_rollup_script: Path,
                                     monkeypatch: pytest.MonkeyPatch):
    project_root = tmp_path / 'addon'
    project_root.mkdir()
    elsewhere = tmp_path / 'elsewhere'
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)

    step = FakeRollupStep('Site', command=[sys.executable, str(fake_rollup_script)], cwd=project_root)
    step(js_dir / 'site.js', [tmp_path / 'out.js'])
    assert (tmp_path / 'out.js').read_text().startswith(f'// built in {project_root.resolve()}\n')


def test_default_bundler_uses_project_root(addon_project: Project):
    bundler = default_bundler(addon_project)
    assert bundler.cwd == addon_project.root
    assert bundler.name == 'RivetSample'
