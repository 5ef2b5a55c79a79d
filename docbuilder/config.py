"""
Build configuration stored as JSON in the project directory.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = '.docbuilder'
CACHE_FILENAME = '.docbuilder-cache.json'
UNSET = 'undefined'

# JSON key -> attribute name
_KEYS = {
    'projectName': 'project_name',
    'homepageName': 'homepage_name',
    'rootFolder': 'root_folder',
    'distFolder': 'dist_folder',
    'embedMermaidDiagrams': 'embed_mermaid_diagrams',
    'pdfCss': 'pdf_css',
    'repoName': 'repo_name',
    'webTheme': 'web_theme',
    'webSearch': 'web_search',
    'docsifyTemplate': 'docsify_template',
    'mermaidCli': 'mermaid_cli',
    'generateCompleteMdFile': 'generate_complete_md_file',
    'dslCli': 'dsl_cli',
    'workspaceDsl': 'workspace_dsl',
}

_INTERNAL = {'generate_website'}

DSL_CLI_CHOICES = ('structurizr-cli', 'docker')


class ConfigError(Exception):
    """Raised when a configuration file exists but cannot be used."""


@dataclass(frozen=True)
class BuildConfig:
    """Settings shared by every output kind.

    Instances are never mutated by the pipeline; derive variants with
    ``dataclasses.replace``.
    """
    project_name: str = 'Documentation'
    homepage_name: str = 'Home'
    root_folder: str = 'src'
    dist_folder: str = 'docs'
    embed_mermaid_diagrams: bool = False
    pdf_css: str = ''
    repo_name: str = ''
    web_theme: str = '//cdn.jsdelivr.net/npm/docsify/lib/themes/vue.css'
    web_search: bool = True
    docsify_template: str = ''
    mermaid_cli: str = 'mmdc'
    generate_complete_md_file: bool = True
    dsl_cli: str = 'structurizr-cli'
    workspace_dsl: str = 'workspace.dsl'
    generate_website: bool = False

    def to_mapping(self) -> Dict[str, Any]:
        """Return the persisted settings keyed by their JSON names."""
        return {key: getattr(self, attr) for key, attr in _KEYS.items()}

    def replace(self, **changes) -> 'BuildConfig':
        return dataclasses.replace(self, **changes)


def is_unset(value: Optional[str]) -> bool:
    """True for an empty value or the placeholder written for unset keys."""
    return value is None or not str(value).strip() or value == UNSET


def _field_types() -> Dict[str, Any]:
    return {f.name: f.type for f in fields(BuildConfig)}


def _coerce(attr: str, raw: Any) -> Any:
    kind = _field_types()[attr]
    if kind in (bool, 'bool'):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in ('true', 'yes', 'y', '1'):
            return True
        if text in ('false', 'no', 'n', '0', ''):
            return False
        raise ValueError(f"Expected a yes/no value for {attr}, got {raw!r}")
    if attr == 'dsl_cli':
        choice = str(raw).strip()
        if choice not in DSL_CLI_CHOICES:
            raise ValueError(f"Expected one of {', '.join(DSL_CLI_CHOICES)} for {attr}, got {raw!r}")
        return choice
    return '' if raw is None else str(raw)


def config_from_mapping(data: Mapping[str, Any]) -> BuildConfig:
    """Build a config from JSON data, ignoring unknown keys and bad values."""
    values = {}
    for key, raw in data.items():
        attr = _KEYS.get(key)
        if attr is None:
            logger.debug(f"Ignoring unknown configuration key {key}")
            continue
        try:
            values[attr] = _coerce(attr, raw)
        except ValueError as error:
            logger.warning(f"Ignoring configuration value: {error}")
    return BuildConfig(**values)


def load_config(path: Optional[Path] = None) -> BuildConfig:
    """Load the configuration file, falling back to defaults when it is absent."""
    config_file = Path(path) if path else Path.cwd() / CONFIG_FILENAME
    if not config_file.exists():
        logger.info(f"No configuration file at {config_file}, using defaults")
        return BuildConfig()

    try:
        data = json.loads(config_file.read_text(encoding='utf-8') or '{}')
    except (OSError, ValueError) as error:
        raise ConfigError(f"Unable to read configuration {config_file}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration {config_file} must contain a JSON object")
    return config_from_mapping(data)


def save_config(config: BuildConfig, path: Optional[Path] = None) -> Path:
    """Write the persisted settings as pretty JSON."""
    config_file = Path(path) if path else Path.cwd() / CONFIG_FILENAME
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, 'w', encoding='utf-8') as f:
        json.dump(config.to_mapping(), f, indent=2)
    return config_file


def set_config_value(config: BuildConfig, key: str, raw: str) -> BuildConfig:
    """Return a copy of ``config`` with one setting changed.

    ``key`` may be the JSON name (``distFolder``) or the attribute name
    (``dist_folder``).
    """
    attr = _KEYS.get(key, key)
    if attr not in _KEYS.values() or attr in _INTERNAL:
        raise KeyError(key)
    return config.replace(**{attr: _coerce(attr, raw)})
