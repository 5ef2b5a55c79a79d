"""
Build Markdown bundles, PDFs and docsify sites from a tree of Markdown and
Mermaid sources.
"""

from .assemblers import MarkdownAssembler, OutputAssembler, OutputKind, PdfAssembler, SiteAssembler
from .cache import ContentCache
from .config import BuildConfig, load_config
from .mermaid import DiagramRenderer
from .structurizr import DslExporter
from .transform import MarkdownTransformer
from .tree import SourceTree, TreeNode, generate_tree

__version__ = '0.1.0'
