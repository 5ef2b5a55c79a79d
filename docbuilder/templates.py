"""
HTML shells for the generated site.

A template is any callable taking ``DocsifyOptions`` and returning the text
of ``index.html``. Templates are looked up by registered name or by a
``module:function`` / ``path/to/file.py:function`` reference.
"""

import importlib
import importlib.util
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = 'docsify'


@dataclass(frozen=True)
class DocsifyOptions:
    name: str
    repo: str = ''
    load_sidebar: bool = True
    auto2top: bool = True
    homepage: str = 'README.md'
    stylesheet: str = ''
    support_search: bool = True

    def to_dict(self) -> Dict:
        """Options in the camelCase form docsify reads from window.$docsify."""
        return {
            'name': self.name,
            'repo': self.repo,
            'loadSidebar': self.load_sidebar,
            'auto2top': self.auto2top,
            'homepage': self.homepage,
            'stylesheet': self.stylesheet,
            'supportSearch': self.support_search,
        }


SiteTemplate = Callable[[DocsifyOptions], str]


def docsify_template(options: DocsifyOptions) -> str:
    search = ''
    if options.support_search:
        search = '<script src="//cdn.jsdelivr.net/npm/docsify/lib/plugins/search.min.js"></script>'
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{options.name}</title>
    <meta http-equiv="X-UA-Compatible" content="IE=edge,chrome=1" />
    <meta name="description" content="Description">
    <meta name="viewport" content="width=device-width, user-scalable=no, initial-scale=1.0, maximum-scale=1.0, minimum-scale=1.0">
    <link rel="stylesheet" href="{options.stylesheet}">
</head>
<body>
    <div id="app"></div>
    <script>
    window.$docsify = {json.dumps(options.to_dict(), indent=2)};
    </script>
    <script src="//unpkg.com/docsify/lib/docsify.min.js"></script>
    <script type="module">
        import mermaid from "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.esm.min.mjs";
        mermaid.initialize({{ startOnLoad: true }});
        window.mermaid = mermaid;
    </script>
    <script src="//unpkg.com/docsify-mermaid@2.0.1/dist/docsify-mermaid.js"></script>
    <script src="//cdn.jsdelivr.net/npm/docsify/lib/plugins/zoom-image.min.js"></script>
    {search}
</body>
</html>
"""


_TEMPLATES: Dict[str, SiteTemplate] = {DEFAULT_TEMPLATE: docsify_template}


def register_template(name: str, template: SiteTemplate):
    """Make ``template`` selectable by ``name`` in the configuration."""
    if not callable(template):
        raise TypeError(f"Site template {name} must be callable")
    _TEMPLATES[name] = template


def default_template() -> SiteTemplate:
    return _TEMPLATES[DEFAULT_TEMPLATE]


def _import_module(module_ref: str):
    if module_ref.endswith('.py'):
        path = Path(module_ref)
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load {module_ref}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(module_ref)


def resolve_template(reference: Optional[str]) -> SiteTemplate:
    """Return the template named by ``reference``, or the default one."""
    if not reference or not reference.strip():
        return default_template()
    reference = reference.strip()
    if reference in _TEMPLATES:
        return _TEMPLATES[reference]

    module_ref, sep, attr = reference.rpartition(':')
    if not sep or not module_ref or not attr:
        logger.warning(f"Unknown site template {reference}, using the default template")
        return default_template()

    try:
        module = _import_module(module_ref)
    except Exception as error:
        logger.error(f"Site template {module_ref} failed to load, using the default template: {error}")
        return default_template()

    template = getattr(module, attr, None)
    if not callable(template):
        logger.warning(f"Site template {module_ref} loaded but is missing the expected export {attr}, "
                       "using the default template")
        return default_template()
    return template


def render_template(template: SiteTemplate, options: DocsifyOptions) -> str:
    """Render ``template``, falling back to the default when it misbehaves."""
    try:
        html = template(options)
    except Exception as error:
        logger.error(f"Site template raised an error, using the default template: {error}")
        return default_template()(options)
    if not isinstance(html, str):
        logger.error(f"Site template returned {type(html).__name__} instead of text, using the default template")
        return default_template()(options)
    return html
