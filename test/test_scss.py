from pathlib import Path

import pytest

from docket.core import StepFailedException
from docket.scss import SassStep


@pytest.fixture
def sass_dir(tmp_path: Path):
    sass_dir = tmp_path / 'sass'
    (sass_dir / 'components').mkdir(parents=True)
    (sass_dir / '_variables.scss').write_text('$brand: #006298;\n')
    (sass_dir / 'components' / '_button.scss').write_text('.btn { color: $brand; }\n')
    (sass_dir / 'site.scss').write_text(
        "@import 'variables';\n"
        "@import 'components/button';\n"
        '.card {\n  &__title { border-color: $brand; }\n}\n'
    )
    return sass_dir


def test_sass_step_compiles_expanded(sass_dir: Path, tmp_path: Path):
    output = tmp_path / 'css' / 'site.css'
    sources, outputs = SassStep()(sass_dir / 'site.scss', [output])

    css = output.read_text()
    assert '.card__title {\n  border-color: #006298;\n}' in css
    assert '.btn {\n  color: #006298;\n}' in css
    assert outputs == [output]
    assert sources[0] == sass_dir / 'site.scss'
    assert set(sources) == {
        sass_dir / 'site.scss',
        sass_dir / '_variables.scss',
        sass_dir / 'components' / '_button.scss',
    }


def test_sass_step_compressed(sass_dir: Path, tmp_path: Path):
    output = tmp_path / 'site.css'
    SassStep('compressed')(sass_dir / 'site.scss', [output])
    assert '\n' not in output.read_text().strip()


def test_sass_step_extra_include_paths(sass_dir: Path, tmp_path: Path):
    vendor = tmp_path / 'vendor'
    vendor.mkdir()
    (vendor / '_reset.scss').write_text('* { margin: 0; }\n')
    (sass_dir / 'extra.scss').write_text("@import 'reset';\n")

    output = tmp_path / 'extra.css'
    sources, _outputs = SassStep(include_paths=[vendor])(sass_dir / 'extra.scss', [output])
    assert 'margin: 0' in output.read_text()
    assert vendor / '_reset.scss' in sources


def test_sass_step_compile_error(sass_dir: Path, tmp_path: Path):
    broken = sass_dir / 'broken.scss'
    broken.write_text('.a { color: $undefined-variable; }\n')
    with pytest.raises(StepFailedException) as exc_info:
        SassStep()(broken, [tmp_path / 'broken.css'])
    assert exc_info.value.path == broken
    assert 'undefined' in exc_info.value.message.lower()
    assert not (tmp_path / 'broken.css').exists()
