import pathlib
import shutil
import sys

import pytest

from docket.bundle import RollupStep
from docket.config import load_project


EXAMPLE_DIR = pathlib.Path(__file__).parent.parent / 'examples' / 'addon'

# Stands in for `npx rollup`: wraps the entry module after a comment naming the
# directory it ran in, writes a sourcemap, and fails on sources containing
# "syntax error".
FAKE_ROLLUP = '''
import pathlib
import sys

args = sys.argv[1:]
source = pathlib.Path(args[0])
output = pathlib.Path(args[args.index('--file') + 1])
name = args[args.index('--name') + 1]
text = source.read_text()
if 'syntax error' in text:
    print(f'[!] Error: Unexpected token in {source.name}')
    sys.exit(1)
output.write_text(
    f'// built in {pathlib.Path.cwd()}\\n'
    f'(function (global) {{ global.{name} = {{}};\\n{text}\\n}})(this);\\n'
    f'//# sourceMappingURL={output.name}.map\\n'
)
if '--sourcemap' in args:
    output.with_name(output.name + '.map').write_text('{"version":3,"mappings":""}')
print(f'created {output.name}')
'''


class FakeRollupStep(RollupStep):
    @classmethod
    def get_dependencies(cls):
        return set()


@pytest.fixture
def fake_rollup_script(tmp_path_factory: pytest.TempPathFactory):
    script = tmp_path_factory.mktemp('tools') / 'fake_rollup.py'
    script.write_text(FAKE_ROLLUP)
    return script


@pytest.fixture
def fake_bundler(fake_rollup_script: pathlib.Path):
    return FakeRollupStep('RivetSample', command=[sys.executable, str(fake_rollup_script)])


@pytest.fixture
def addon_dir(tmp_path: pathlib.Path):
    target = tmp_path / 'addon'
    shutil.copytree(EXAMPLE_DIR, target)
    return target


@pytest.fixture
def addon_project(addon_dir: pathlib.Path):
    return load_project(addon_dir)
