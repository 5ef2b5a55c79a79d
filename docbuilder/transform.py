"""
Markdown document transformation.

Each document is parsed into a markdown-it token stream, linked assets are
copied next to the output, Mermaid diagrams are embedded or rendered to SVG,
and the stream is written back out as Markdown with mdformat's renderer.
"""

import logging
import shutil
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdformat.renderer import MDRenderer

from .config import BuildConfig
from .files import PathLike, absolute, mirror_path, read_text, relative_url
from .mermaid import DiagramRenderer
from .tree import MERMAID_EXTENSION, TreeNode

logger = logging.getLogger(__name__)

DIAGRAM_LANGUAGE = 'mermaid'
DOCSIFY_IGNORE = ':ignore'
IMAGE_EXTENSION = '.svg'


def build_parser() -> MarkdownIt:
    """CommonMark parser whose renderer produces Markdown instead of HTML."""
    mdit = MarkdownIt('commonmark', renderer_cls=MDRenderer)
    mdit.options['mdformat'] = {}
    mdit.options['store_labels'] = True
    mdit.options['parser_extension'] = []
    mdit.options['codeformatters'] = {}
    return mdit


def is_external(url: str) -> bool:
    """URLs with a scheme, protocol-relative URLs and in-page anchors."""
    if not url or url.startswith('//') or url.startswith('#'):
        return True
    return bool(urlsplit(url).scheme)


def split_url(url: str) -> Tuple[str, str]:
    """Split a local URL into its decoded file path and its ?query#fragment."""
    parts = urlsplit(url)
    suffix = ''
    if parts.query:
        suffix += '?' + parts.query
    if parts.fragment:
        suffix += '#' + parts.fragment
    return unquote(parts.path), suffix


def is_diagram_url(url: str) -> bool:
    return not is_external(url) and split_url(url)[0].lower().endswith(MERMAID_EXTENSION)


def _is_blank(token: Token) -> bool:
    if token.type in ('softbreak', 'hardbreak'):
        return True
    return token.type == 'text' and not token.content.strip()


def _closing_index(children: List[Token], start: int) -> int:
    depth = 0
    for index in range(start, len(children)):
        if children[index].type == 'link_open':
            depth += 1
        elif children[index].type == 'link_close':
            depth -= 1
            if depth == 0:
                return index
    return len(children) - 1


def _diagram_spans(children: List[Token]) -> List[Tuple[int, int]]:
    """(link_open, link_close) index pairs of links to .mmd files."""
    spans = []
    index = 0
    while index < len(children):
        token = children[index]
        if token.type == 'link_open' and is_diagram_url(token.attrGet('href') or ''):
            end = _closing_index(children, index)
            spans.append((index, end))
            index = end + 1
        else:
            index += 1
    return spans


def _nesting_depth(children: List[Token], index: int) -> int:
    """Number of inline containers (emphasis, strong, links) open before ``index``."""
    return sum(token.nesting for token in children[:index])


def _text_token(content: str) -> Token:
    return Token('text', '', 0, content=content)


def _image_token(url: str, alt: str) -> Token:
    return Token('image', 'img', 0, attrs={'src': url, 'alt': ''}, children=[_text_token(alt)], content=alt)


def _paragraph(children: List[Token], level: int = 0, hidden: bool = False) -> List[Token]:
    """Wrap inline tokens in a paragraph; blank edges are dropped."""
    children = list(children)
    while children and _is_blank(children[0]):
        children.pop(0)
    while children and _is_blank(children[-1]):
        children.pop()
    if not children:
        return []
    if children[0].type == 'text':
        children[0] = _text_token(children[0].content.lstrip())
    if children[-1].type == 'text':
        children[-1] = _text_token(children[-1].content.rstrip())
    return [
        Token('paragraph_open', 'p', 1, block=True, level=level, hidden=hidden),
        Token('inline', '', 0, children=children, level=level + 1),
        Token('paragraph_close', 'p', -1, block=True, level=level, hidden=hidden),
    ]


def _fence(content: str, level: int = 0) -> Token:
    if not content.endswith('\n'):
        content += '\n'
    return Token('fence', 'code', 0, info=DIAGRAM_LANGUAGE, content=content, markup='```', block=True,
                 level=level)


@dataclass
class DiagramReference:
    """A diagram found in the document: a .mmd link span or a mermaid fence."""
    inline: Optional[Token] = None
    span: Optional[Tuple[int, int]] = None
    fence: Optional[Token] = None

    def label(self) -> str:
        if self.fence is not None:
            return 'inline mermaid block'
        return self.inline.children[self.span[0]].attrGet('href')


class DocumentRewrite:
    """Owns the token stream of one document while it is being rewritten."""

    def __init__(self, parser: MarkdownIt, markdown_text: str, document_name: str,
                 source_dir: PathLike, config: BuildConfig):
        self.parser = parser
        self.env = {}
        self.tokens: List[Token] = parser.parse(markdown_text, self.env)
        self.document_name = document_name
        self.source_dir = absolute(source_dir)
        self.config = config
        self.root = absolute(config.root_folder)
        self.dist = absolute(config.dist_folder)

    @property
    def multi_page(self) -> bool:
        return self.config.generate_website or not self.config.generate_complete_md_file

    def _inlines(self) -> List[Token]:
        return [t for t in self.tokens if t.type == 'inline' and t.children]

    def _mirror(self, path: Path) -> Optional[Path]:
        return mirror_path(path, self.root, self.dist)

    # Linked assets

    def copy_linked_assets(self):
        """Copy images and non-diagram link targets into the destination."""
        for inline in self._inlines():
            for token in inline.children:
                if token.type == 'image':
                    self._copy_asset(token, 'src')
                elif token.type == 'link_open' and not is_diagram_url(token.attrGet('href') or ''):
                    self._copy_asset(token, 'href')

    def _copy_asset(self, token: Token, attr: str):
        url = token.attrGet(attr)
        if not isinstance(url, str) or is_external(url) or token.info == 'auto':
            return
        path, suffix = split_url(url)
        if not path:
            return

        source = absolute(self.source_dir / path)
        try:
            if not source.exists():
                logger.warning(f"Linked file not found: {source}")
                return
            if not source.is_file():
                logger.info(f"Linked path is not a file, leaving it as is: {source}")
                return
            destination = self._mirror(source)
            if destination is None:
                logger.warning(f"Linked file is outside the root folder {self.root}: {source}")
                return
            if destination != source:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, destination)
        except OSError as error:
            logger.error(f"Failed to copy linked item {source}: {error}")
            return

        relative = relative_url(destination, self.dist)
        token.attrSet(attr, quote(relative) + suffix)
        token.meta.pop('label', None)
        if token.type == 'image':
            if not token.content.strip():
                token.content = source.stem
                token.children = [_text_token(source.stem)]
        elif self.config.generate_website:
            # docsify serves links with this title as plain files
            token.attrSet('title', DOCSIFY_IGNORE)
        logger.info(f"Copied file to {relative}")

    # Diagrams

    def _load_diagram(self, source: Path) -> Optional[str]:
        if not source.is_file():
            logger.warning(f"Linked mermaid file not found: {source}")
            return None
        content = read_text(source)
        if content is None:
            return None
        if not content.strip():
            logger.warning(f"Linked mermaid file appears to be empty: {source}")
            return None
        return content

    def _diagram_source(self, link: Token) -> Path:
        return absolute(self.source_dir / split_url(link.attrGet('href'))[0])

    def embed_diagrams(self):
        """Replace paragraph-level .mmd links with mermaid code blocks."""
        rewritten = []
        index = 0
        while index < len(self.tokens):
            token = self.tokens[index]
            if (token.type == 'paragraph_open' and index + 2 < len(self.tokens)
                    and self.tokens[index + 1].type == 'inline'):
                rewritten.extend(self._embed_paragraph(token, self.tokens[index + 1], self.tokens[index + 2]))
                index += 3
                continue
            if token.type == 'inline' and token.children and _diagram_spans(token.children):
                logger.warning(f"Mermaid link in {self.document_name} is not inside a paragraph "
                               "and cannot be embedded, leaving it as is")
            rewritten.append(token)
            index += 1
        self.tokens = rewritten

    def _embed_paragraph(self, opening: Token, inline: Token, closing: Token) -> List[Token]:
        children = inline.children or []
        spans = _diagram_spans(children)
        if not spans:
            return [opening, inline, closing]

        blocks = []
        cursor = 0
        for start, end in spans:
            if _nesting_depth(children, start) > 0:
                logger.warning(f"Mermaid link {children[start].attrGet('href')} in {self.document_name} is inside "
                               "other inline markup and cannot be embedded, leaving it as is")
                continue
            source = self._diagram_source(children[start])
            try:
                content = self._load_diagram(source)
            except OSError as error:
                logger.error(f"Failed to process linked Mermaid file {source}: {error}")
                continue
            if content is None:
                continue
            blocks.extend(_paragraph(children[cursor:start], opening.level, opening.hidden))
            blocks.append(_fence(content, opening.level))
            cursor = end + 1
            logger.info(f"Embedded mermaid source from {source}")

        if cursor == 0:
            return [opening, inline, closing]
        blocks.extend(_paragraph(children[cursor:], opening.level, opening.hidden))
        return blocks

    def _collect_diagrams(self) -> List[DiagramReference]:
        references = []
        for token in self.tokens:
            if token.type == 'fence' and token.info.strip().split(' ')[0] == DIAGRAM_LANGUAGE:
                references.append(DiagramReference(fence=token))
            elif token.type == 'inline' and token.children:
                for span in _diagram_spans(token.children):
                    references.append(DiagramReference(inline=token, span=span))
        return references

    def _image_url(self, target: Path) -> str:
        base = self._mirror(self.source_dir) if self.multi_page else self.dist
        return quote(relative_url(target, base or self.dist))

    def _render(self, reference: DiagramReference, renderer: DiagramRenderer) -> Optional[Token]:
        if reference.fence is not None:
            text = reference.fence.content
            directory = self._mirror(self.source_dir)
            if directory is None:
                logger.warning(f"Source folder {self.source_dir} is outside the root folder {self.root}")
                return None
            if not text.strip():
                logger.warning(f"Mermaid content empty in {self.source_dir / self.document_name}")
                return None
            target = directory / renderer.generate_unique_filename(directory)
        else:
            source = self._diagram_source(reference.inline.children[reference.span[0]])
            text = self._load_diagram(source)
            if text is None:
                return None
            mirrored = self._mirror(source)
            if mirrored is None:
                logger.warning(f"Linked mermaid file is outside the root folder {self.root}: {source}")
                return None
            target = mirrored.with_suffix(IMAGE_EXTENSION)

        if not renderer.render(text, target):
            return None
        return _image_token(self._image_url(target), target.name)

    def convert_diagrams(self, renderer: DiagramRenderer):
        """Render every diagram reference and point the document at the images."""
        inline_edits = defaultdict(list)
        fence_edits = {}
        for reference in self._collect_diagrams():
            try:
                image = self._render(reference, renderer)
            except Exception as error:
                logger.error(f"Failed to process Mermaid diagram {reference.label()}: {error}")
                continue
            if image is None:
                continue
            if reference.fence is not None:
                fence_edits[id(reference.fence)] = image
            else:
                inline_edits[id(reference.inline)].append((reference.inline, reference.span, image))

        for edits in inline_edits.values():
            for inline, (start, end), image in sorted(edits, key=lambda edit: edit[1][0], reverse=True):
                inline.children[start:end + 1] = [image]

        if fence_edits:
            rewritten = []
            for token in self.tokens:
                image = fence_edits.get(id(token))
                if image is None:
                    rewritten.append(token)
                else:
                    rewritten.extend(_paragraph([image], token.level))
            self.tokens = rewritten

    def render(self) -> str:
        return self.parser.renderer.render(self.tokens, self.parser.options, self.env)


class MarkdownTransformer:
    """Runs the per-document pipeline: parse, copy assets, diagrams, serialize."""

    def __init__(self, renderer: Optional[DiagramRenderer] = None):
        self.renderer = renderer
        self.parser = build_parser()

    def _renderer_for(self, config: BuildConfig) -> DiagramRenderer:
        return self.renderer or DiagramRenderer(config.mermaid_cli)

    def transform(self, markdown_text: str, document_name: str, source_dir: PathLike,
                  config: BuildConfig) -> str:
        rewrite = DocumentRewrite(self.parser, markdown_text, document_name, source_dir, config)

        logger.info(f"Copying linked files in {source_dir} ...")
        rewrite.copy_linked_assets()

        if config.embed_mermaid_diagrams:
            logger.info(f"Converting linked Mermaid files to embedded code blocks in {document_name} ...")
            rewrite.embed_diagrams()
        else:
            logger.info(f"Converting Mermaid documents in {document_name} to linked SVG images ...")
            rewrite.convert_diagrams(self._renderer_for(config))

        return rewrite.render()

    def process_node(self, node: TreeNode, config: BuildConfig) -> str:
        """Transform every Markdown file of ``node`` and join the results."""
        texts = []
        for md_file in node.md_files:
            try:
                texts.append(self.transform(md_file.content, md_file.name, node.dir, config))
            except Exception as error:
                logger.error(f"Failed to process markdown file {node.dir / md_file.name}: {error}")
        return '\n\n'.join(text.strip('\n') for text in texts)
