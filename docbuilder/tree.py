"""
Source tree scanning.

A build walks the root folder once and records every directory holding
Markdown or Mermaid content in a ``SourceTree``. Nodes are stored in an
index arena; callers choose the order they need through ``root_first`` or
``leaf_first``.
"""

import logging
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .files import PathLike, absolute, folder_name, is_hidden, mirror_path, read_text

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSION = '.md'
MERMAID_EXTENSION = '.mmd'


@dataclass
class SourceFile:
    name: str
    content: str


@dataclass
class TreeNode:
    """One source directory's worth of documentation."""
    dir: Path
    name: str
    level: int
    parent: Optional[Path] = None
    md_files: List[SourceFile] = field(default_factory=list)
    mmd_files: List[SourceFile] = field(default_factory=list)
    descendants: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.md_files or self.mmd_files or self.descendants)

    def source_paths(self) -> List[Path]:
        """Paths of every Markdown and Mermaid file ingested into the node."""
        return [self.dir / f.name for f in self.md_files + self.mmd_files]


class SourceTree:
    """Index-based arena of tree nodes."""

    def __init__(self):
        self.nodes: List[TreeNode] = []
        self.children: List[List[int]] = []
        self.root: Optional[int] = None

    def add(self, node: TreeNode, parent: Optional[int] = None) -> int:
        index = len(self.nodes)
        self.nodes.append(node)
        self.children.append([])
        if parent is None:
            self.root = index
        else:
            self.children[parent].append(index)
        return index

    def root_first(self) -> List[TreeNode]:
        """Pre-order: every parent before its children, siblings by name."""
        ordered = []
        if self.root is None:
            return ordered
        stack = [self.root]
        while stack:
            index = stack.pop()
            ordered.append(self.nodes[index])
            stack.extend(reversed(self.children[index]))
        return ordered

    def leaf_first(self) -> List[TreeNode]:
        """Post-order: every child before its parent."""
        ordered = []

        def visit(index):
            for child in self.children[index]:
                visit(child)
            ordered.append(self.nodes[index])

        if self.root is not None:
            visit(self.root)
        return ordered

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(self.root_first())


# A scanned directory and its surviving sub-branches, before arena placement.
_Branch = Tuple[TreeNode, List['_Branch']]


def _read_dir(directory: Path) -> List[str]:
    try:
        return sorted(name for name in (p.name for p in directory.iterdir()) if not is_hidden(name))
    except OSError as error:
        logger.error(f"Error reading directory {directory}: {error}")
        return []


def _ingest(directory: Path, names: List[str], extension: str) -> List[SourceFile]:
    ingested = []
    for name in names:
        if Path(name).suffix.lower() != extension:
            continue
        path = directory / name
        if not path.is_file():
            continue
        content = read_text(path)
        if content:
            ingested.append(SourceFile(name=name, content=content))
    return ingested


def _scan(directory: Path, base_folder: Path, root_folder: Path, parent: Optional[Path],
          homepage_name: str, dist_folder: Optional[Path]) -> Optional[_Branch]:
    node = TreeNode(
        dir=directory,
        name=folder_name(directory, base_folder, homepage_name),
        level=len(directory.parts) - len(base_folder.parts),
        parent=parent,
    )
    branches = []
    names = _read_dir(directory)

    for name in names:
        path = directory / name
        try:
            stats = path.stat()
        except OSError as error:
            logger.error(f"Error getting stats for {path}: {error}")
            continue
        if not stat.S_ISDIR(stats.st_mode):
            continue

        node.descendants.append(name)
        if dist_folder is not None:
            mirrored = mirror_path(path, root_folder, dist_folder)
            if mirrored is not None:
                try:
                    mirrored.mkdir(parents=True, exist_ok=True)
                except OSError as error:
                    logger.error(f"Error creating directory {mirrored}: {error}")
        branch = _scan(path, base_folder, root_folder, directory, homepage_name, dist_folder)
        if branch is not None:
            branches.append(branch)

    node.md_files = _ingest(directory, names, MARKDOWN_EXTENSION)
    node.mmd_files = _ingest(directory, names, MERMAID_EXTENSION)

    if node.is_empty():
        logger.debug(f"Pruning empty directory {directory}")
        return None
    return node, branches


def _place(tree: SourceTree, branch: _Branch, parent: Optional[int]):
    node, branches = branch
    index = tree.add(node, parent)
    for child in branches:
        _place(tree, child, index)


def generate_tree(base_folder: PathLike, root_folder: PathLike, homepage_name: str,
                  dist_folder: Optional[PathLike] = None) -> SourceTree:
    """Scan ``base_folder`` into a SourceTree.

    When ``dist_folder`` is given, each sub-directory is mirrored there
    (``root_folder`` prefix swapped for ``dist_folder``) as it is visited.
    """
    base = absolute(base_folder)
    root = absolute(root_folder)
    dist = absolute(dist_folder) if dist_folder is not None else None

    tree = SourceTree()
    if not base.is_dir():
        logger.error(f"Source folder {base} does not exist or is not a directory")
        return tree

    branch = _scan(base, base, root, None, homepage_name, dist)
    if branch is not None:
        _place(tree, branch, None)
    return tree
