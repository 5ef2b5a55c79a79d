"""
Output assemblers.

Every output kind follows the same template: prepare the destination folder,
scan the source tree, then assemble the artifact from transformed nodes.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from .cache import ContentCache
from .config import CACHE_FILENAME, BuildConfig, is_unset
from .files import absolute, empty_sub_folder, folder_name, mirror_path, relative_url, write_text, write_text_if_changed
from .log import announce
from .mermaid import clear_generated_diagrams
from .pdf import PdfConverter
from .templates import DocsifyOptions, render_template, resolve_template
from .transform import MarkdownTransformer
from .tree import SourceTree, TreeNode, generate_tree

logger = logging.getLogger(__name__)

BUNDLE_FILENAME = 'README.md'
SIDEBAR_FILENAME = '_sidebar.md'
INDEX_FILENAME = 'index.html'
INDENT = '    '


class OutputKind(str, Enum):
    MD = 'md'
    PDF = 'pdf'
    SITE = 'site'


def heading_anchor(name: str) -> str:
    """In-page anchor for a heading, URI-encoded with spaces as dashes."""
    return quote(name, safe=";,/?:@&=+$-_.!~*'()#").replace('%20', '-')


class OutputAssembler:
    """Template for turning a source tree into one output kind."""

    kind: OutputKind

    def __init__(self, transformer: Optional[MarkdownTransformer] = None):
        self.transformer = transformer or MarkdownTransformer()

    def prepare_output_folder(self, kind: OutputKind, config: BuildConfig, clean: bool = True) -> bool:
        """Check the destination is configured and optionally empty it."""
        if is_unset(config.dist_folder):
            logger.error(f"Please run `config` before attempting to run `{kind.value}`.")
            return False

        target = Path(config.dist_folder)
        if clean and not empty_sub_folder(target):
            logger.error(f"Failed to empty the target folder: {target}")
            return False

        announce(f"\nBuilding {kind.value.upper()} documentation in ./{target}")
        return True

    def generate_source_tree(self, config: BuildConfig) -> SourceTree:
        tree = generate_tree(config.root_folder, config.root_folder, config.homepage_name, config.dist_folder)
        announce(f"Parsed {len(tree)} folders.\n", style='magenta')
        return tree

    def process_node(self, node: TreeNode, config: BuildConfig) -> str:
        return self.transformer.process_node(node, config)

    def output_config(self, config: BuildConfig) -> BuildConfig:
        """The configuration this output kind actually builds with."""
        return config

    def clean_before_build(self, config: BuildConfig) -> bool:
        return True

    def build(self, config: BuildConfig) -> bool:
        """Prepare, scan and assemble. Returns False when the build aborted."""
        config = self.output_config(config)
        if is_unset(config.root_folder) or not Path(config.root_folder).is_dir():
            logger.error(f"Source folder {config.root_folder} not found. Please run `config` first.")
            return False
        if not self.prepare_output_folder(self.kind, config, self.clean_before_build(config)):
            logger.warning('Output folder preparation failed.')
            return False

        tree = self.generate_source_tree(config)
        if not self.assemble(tree, config):
            return False
        announce(f"\n{self.kind.value.upper()} documentation generated successfully!")
        return True

    def assemble(self, tree: SourceTree, config: BuildConfig) -> bool:
        raise NotImplementedError

    # Shared document pieces

    def node_output_path(self, node: TreeNode, config: BuildConfig) -> Path:
        """Where the per-node page for ``node`` is written."""
        directory = mirror_path(node.dir, config.root_folder, config.dist_folder) or absolute(config.dist_folder)
        return directory / f"{node.name}.md"

    def document_header(self, nodes: List[TreeNode], config: BuildConfig) -> str:
        toc = '\n'.join(
            f"{INDENT * node.level}* [{node.name}](#{heading_anchor(node.name)})" for node in nodes
        )
        return f"# {config.project_name}\n\n{toc}\n\n---"

    def document_body(self, nodes: List[TreeNode], config: BuildConfig) -> str:
        body = ''
        for node in nodes:
            name = folder_name(node.dir, config.root_folder, config.homepage_name)
            body += f"\n\n# {name}"
            if name != config.homepage_name:
                body += f"\n\n[{config.homepage_name}](#{heading_anchor(config.project_name)})"
            content = self.process_node(node, config)
            if content:
                body += f"\n\n{content}"
        return body

    def document(self, tree: SourceTree, config: BuildConfig) -> str:
        nodes = tree.root_first()
        return self.document_header(nodes, config) + self.document_body(nodes, config) + '\n'

    def node_page(self, node: TreeNode, config: BuildConfig) -> str:
        content = self.process_node(node, config)
        page = f"# {node.name}\n"
        if content:
            page += f"\n{content}\n"
        return page


class MarkdownAssembler(OutputAssembler):
    """Single README.md bundle, or one page per node."""

    kind = OutputKind.MD

    def assemble(self, tree: SourceTree, config: BuildConfig) -> bool:
        if not config.generate_complete_md_file:
            return self._write_pages(tree, config)

        out_path = Path(config.dist_folder) / BUNDLE_FILENAME
        try:
            write_text(out_path, self.document(tree, config))
        except OSError as error:
            logger.error(f"Failed to write {BUNDLE_FILENAME}: {error}")
            return False
        logger.info(f"Wrote {BUNDLE_FILENAME} to {out_path}")
        return True

    def _write_pages(self, tree: SourceTree, config: BuildConfig) -> bool:
        for node in tree.root_first():
            out_path = self.node_output_path(node, config)
            try:
                write_text(out_path, self.node_page(node, config))
            except OSError as error:
                logger.error(f"Failed to write {out_path}: {error}")
                continue
            logger.info(f"Wrote {out_path}")
        return True


class SiteAssembler(OutputAssembler):
    """docsify site: one page per node, a sidebar and an HTML shell.

    Nodes whose source files are unchanged since the last build are skipped.
    """

    kind = OutputKind.SITE

    def __init__(self, transformer: Optional[MarkdownTransformer] = None, cache: Optional[ContentCache] = None,
                 clean: bool = False):
        super().__init__(transformer)
        self.cache = cache
        self.clean = clean

    def output_config(self, config: BuildConfig) -> BuildConfig:
        return config.replace(embed_mermaid_diagrams=False, generate_website=True)

    def clean_before_build(self, config: BuildConfig) -> bool:
        return self.clean

    def _cache(self) -> ContentCache:
        if self.cache is None:
            self.cache = ContentCache(Path.cwd() / CACHE_FILENAME)
        return self.cache

    def sidebar(self, nodes: List[TreeNode], config: BuildConfig) -> str:
        lines = []
        for node in nodes:
            page = relative_url(self.node_output_path(node, config), config.dist_folder)
            lines.append(f"{INDENT * node.level}* [{node.name}]({quote(page)})")
        return '\n'.join(lines) + '\n'

    def node_changed(self, node: TreeNode, config: BuildConfig, cache: ContentCache) -> bool:
        if not self.node_output_path(node, config).is_file():
            return True
        return any(cache.has_changed(path) for path in node.source_paths())

    def assemble(self, tree: SourceTree, config: BuildConfig) -> bool:
        cache = self._cache()
        if self.clean:
            cache.clear()
        else:
            cache.load_cache()

        nodes = tree.root_first()
        dist = Path(config.dist_folder)
        write_text_if_changed(dist / SIDEBAR_FILENAME, self.sidebar(nodes, config))

        for node in nodes:
            if not self.node_changed(node, config, cache):
                logger.info(f"Skipping unchanged folder {node.dir}")
                continue
            out_path = self.node_output_path(node, config)
            # inline diagrams are renumbered from mmd_1.svg on every rebuild
            clear_generated_diagrams(out_path.parent)
            try:
                write_text(out_path, self.node_page(node, config))
            except OSError as error:
                logger.error(f"Failed to write {out_path}: {error}")
                continue
            for path in node.source_paths():
                cache.mark_processed(path)
            logger.info(f"Wrote {out_path}")

        options = DocsifyOptions(
            name=config.project_name,
            repo=config.repo_name,
            homepage=f"{config.homepage_name}.md",
            stylesheet=config.web_theme,
            support_search=config.web_search,
        )
        html = render_template(resolve_template(config.docsify_template), options)
        write_text_if_changed(dist / INDEX_FILENAME, html)
        write_text_if_changed(dist / '.nojekyll', '')

        cache.persist()
        return True


class PdfAssembler(OutputAssembler):
    """The Markdown bundle converted to <project>.pdf."""

    kind = OutputKind.PDF

    def __init__(self, transformer: Optional[MarkdownTransformer] = None,
                 converter: Optional[PdfConverter] = None):
        super().__init__(transformer)
        self.converter = converter or PdfConverter()

    def output_config(self, config: BuildConfig) -> BuildConfig:
        return config.replace(generate_complete_md_file=True, generate_website=False)

    def assemble(self, tree: SourceTree, config: BuildConfig) -> bool:
        dist = Path(config.dist_folder)
        temp_file = dist / f"_{config.project_name}.md"
        out_path = dist / f"{config.project_name}.pdf"

        try:
            write_text(temp_file, self.document(tree, config))
            self.converter.convert(temp_file, out_path, [config.pdf_css] if not is_unset(config.pdf_css) else [])
            logger.info(f"Wrote {out_path.name} to {out_path}")
            return True
        except Exception as error:
            logger.error(f"Failed to generate PDF {out_path}: {error}")
            return False
        finally:
            try:
                temp_file.unlink()
            except FileNotFoundError:
                pass
            except OSError as error:
                logger.error(f"Failed to delete temporary file {temp_file}: {error}")
