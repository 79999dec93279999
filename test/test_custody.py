import hashlib
import json
from pathlib import Path

import pytest

from docket.core import BuildSettings, Context, Rule, Step
from docket.custody import Custodian, checksum
from docket.paths import OutputDirPathCalc, REMatcher


class CountingCopyStep(Step):
    def __init__(self):
        self.calls: list[Path] = []

    def __call__(self, path: Path, output_paths: list[Path]):
        self.calls.append(path)
        for o_path in output_paths:
            o_path.parent.mkdir(parents=True, exist_ok=True)
            o_path.write_bytes(path.read_bytes())


@pytest.fixture
def build_settings(tmp_path: Path):
    settings = BuildSettings(
        input_dir=tmp_path / 'input',
        output_dir=tmp_path / 'output',
        working_dir=tmp_path / 'working',
        custody_cache=tmp_path / 'custody.json',
        purge_dirs=False
    )
    settings['input_dir'].mkdir()
    (settings['input_dir'] / 'a.css').write_text('a { color: red; }')
    (settings['input_dir'] / 'b.css').write_text('b { color: blue; }')
    return settings


def run_build(settings: BuildSettings, fingerprint: dict | None = None):
    step = CountingCopyStep()
    rules = [Rule(REMatcher(r'.*\.css', parent_dir='input_dir'), OutputDirPathCalc(), step)]
    Context(settings, rules, Custodian(fingerprint)).run()
    return step


def test_checksum(tmp_path: Path):
    path = tmp_path / 'file.txt'
    path.write_text('docket')
    assert checksum(path) == hashlib.sha1(b'docket').hexdigest()
    assert checksum(tmp_path) == ''


def test_rerun_skips_unchanged(build_settings: BuildSettings):
    first = run_build(build_settings)
    assert len(first.calls) == 2
    mtime = (build_settings['output_dir'] / 'a.css').stat().st_mtime_ns

    second = run_build(build_settings)
    assert second.calls == []
    assert (build_settings['output_dir'] / 'a.css').stat().st_mtime_ns == mtime


def test_rerun_after_source_change(build_settings: BuildSettings):
    run_build(build_settings)
    (build_settings['input_dir'] / 'b.css').write_text('b { color: green; }')

    step = run_build(build_settings)
    assert step.calls == [build_settings['input_dir'] / 'b.css']
    assert (build_settings['output_dir'] / 'b.css').read_text() == 'b { color: green; }'


def test_rerun_after_output_removed(build_settings: BuildSettings):
    run_build(build_settings)
    (build_settings['output_dir'] / 'a.css').unlink()

    step = run_build(build_settings)
    assert step.calls == [build_settings['input_dir'] / 'a.css']


def test_cache_file_keys_are_generic(build_settings: BuildSettings):
    run_build(build_settings, {'package': {'version': '1.0.0'}})
    assert build_settings['custody_cache']
    data = json.loads(build_settings['custody_cache'].read_text())
    assert data['builds']['output_dir/a.css'] == {'input_dir/a.css': ['output_dir/a.css']}
    assert set(data['files']['input_dir/a.css']) == {'sha1', 'mtime', 'size'}
    assert data['fingerprint']['package'] == {'version': '1.0.0'}
    assert 'docket_version' in data['fingerprint']


def test_rerun_after_fingerprint_change(build_settings: BuildSettings):
    run_build(build_settings, {'package': {'version': '1.0.0'}})
    assert run_build(build_settings, {'package': {'version': '1.0.0'}}).calls == []

    step = run_build(build_settings, {'package': {'version': '1.1.0'}})
    assert len(step.calls) == 2


def test_rerun_after_output_edited(build_settings: BuildSettings):
    run_build(build_settings)
    (build_settings['output_dir'] / 'b.css').write_text('tampered')

    step = run_build(build_settings)
    assert step.calls == [build_settings['input_dir'] / 'b.css']


def test_external_paths_round_trip(build_settings: BuildSettings, tmp_path: Path):
    custodian = Custodian()
    custodian.bind(Context(build_settings, []))
    external = tmp_path / 'node_modules' / 'lib.scss'
    assert custodian.key_for(external) == external.as_posix()
    assert custodian.path_for(custodian.key_for(external)) == external
    assert custodian.key_for(build_settings['output_dir'] / 'css' / 'a.css') == 'output_dir/css/a.css'
    assert custodian.path_for('output_dir') == build_settings['output_dir']
