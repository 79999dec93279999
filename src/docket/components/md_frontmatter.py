"""
Front matter formats for docs pages. A parser receives the text between the
`---` fences at the top of a page and returns the page's metadata.
"""
import sys
import typing as t

FrontMatterParser = t.Callable[[str], dict[str, t.Any]]
FrontMatterFormat = t.Literal['simple', 'toml', 'yaml']


def parse_simple(text: str) -> dict[str, t.Any]:
    """
    `key: value` lines, values kept as strings. Parsing stops at the first
    line without a valid key.
    """
    meta: dict[str, t.Any] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(':')
        key = key.strip()
        if not sep or not key.isidentifier():
            break
        meta[key] = value.strip()
    return meta


def _toml_parser() -> FrontMatterParser:
    if sys.version_info < (3, 11):
        import tomli as tomllib
    else:
        import tomllib
    return tomllib.loads


def _yaml_parser() -> FrontMatterParser:
    from ruamel.yaml import YAML
    yaml = YAML(typ='safe')

    def parse_yaml(text: str):
        meta = yaml.load(text)
        if meta is None:
            return {}
        if not isinstance(meta, dict):
            raise ValueError(f'Front matter must be a mapping, not {type(meta).__name__}')
        return meta

    return parse_yaml


FRONT_MATTER_FORMATS: dict[FrontMatterFormat, t.Callable[[], FrontMatterParser]] = {
    'simple': lambda: parse_simple,
    'toml': _toml_parser,
    'yaml': _yaml_parser,
}


def get_frontmatter_parser(front_matter: FrontMatterFormat | FrontMatterParser) -> FrontMatterParser:
    """
    Look up the parser for a named format; callables are used as they are.
    """
    if callable(front_matter):
        return front_matter
    return FRONT_MATTER_FORMATS[front_matter]()
