"""Navigation tree model.

The tree holds directories and symbolic links only; files are never nodes.
It is rebuilt from scratch from the flat entry list of the tree endpoint
every time that endpoint is fetched successfully, so nodes are never
patched across rebuilds.
"""

import logging
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, Field

from fsview.models import ROOT_PATH, Entry

logger = logging.getLogger(__name__)

# Display name of the root node
ROOT_NAME = "/"


def split_path(path: str | None) -> list[str]:
    """Split a relative path into its usable segments.

    Empty and ``.`` segments are dropped, so ``"."``, ``""`` and ``"a//b/"``
    give ``[]``, ``[]`` and ``["a", "b"]``.
    """
    return [part for part in (path or "").split("/") if part not in ("", ROOT_PATH)]


def join_path(parts: list[str]) -> str:
    """Join segments back into a relative path (``"."`` when empty)."""
    return "/".join(parts) if parts else ROOT_PATH


class TreeNode(BaseModel):
    """One directory or symbolic link in the cached hierarchy.

    Attributes:
        name: Base name ("/" for the root).
        path: Full relative path ("." for the root).
        is_symlink: Whether the node is a symbolic link.
        symlink_target: Link target for symlink nodes.
        children: Child nodes keyed by base name.
    """

    name: str
    path: str
    is_symlink: bool = False
    symlink_target: str | None = None
    children: dict[str, "TreeNode"] = Field(default_factory=dict)

    @property
    def is_root(self) -> bool:
        return self.path == ROOT_PATH

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def sorted_children(self) -> list["TreeNode"]:
        """Children in name order, as a tree view displays them."""
        return [self.children[name] for name in sorted(self.children)]

    def find(self, path: str) -> "TreeNode | None":
        """Return the node at ``path`` below this node, or None."""
        node = self
        for part in split_path(path):
            node = node.children.get(part)
            if node is None:
                return None
        return node

    def walk(self) -> Iterator["TreeNode"]:
        """Iterate over this node and its descendants, pre-order."""
        yield self
        for child in self.sorted_children():
            yield from child.walk()

    def paths(self) -> list[str]:
        """Paths of every node in the subtree, pre-order."""
        return [node.path for node in self.walk()]


def build_tree(entries: Iterable[Entry]) -> TreeNode:
    """Build the navigation tree from the flat entry list of the hierarchy.

    Directories and symlinks whose name is not hidden become nodes; every
    missing ancestor gets an intermediate node with ``is_symlink=False``,
    which the ancestor's own entry overwrites when it is processed. Entries
    whose path has no usable segment are skipped.

    Args:
        entries: Every entry of the hierarchy, in server order.

    Returns:
        The root node (name "/", path ".").
    """
    root = TreeNode(name=ROOT_NAME, path=ROOT_PATH)
    skipped = 0

    for entry in entries:
        if not entry.is_navigable or entry.is_hidden:
            continue
        parts = split_path(entry.path)
        if not parts:
            skipped += 1
            logger.debug("Skipping tree entry with unusable path: %r", entry.path)
            continue

        node = root
        for index, part in enumerate(parts):
            child = node.children.get(part)
            if child is None:
                child = TreeNode(name=part, path="/".join(parts[: index + 1]))
                node.children[part] = child
            node = child

        node.is_symlink = entry.is_symlink
        node.symlink_target = entry.symlink_target if entry.is_symlink else None

    if skipped:
        logger.debug("Skipped %d tree entries with unusable paths", skipped)
    return root


class ActivePath(BaseModel):
    """Result of resolving the current path against the cached tree.

    Attributes:
        path: The path that was resolved.
        chain: Nodes from the root down to the matching node; empty when
            the path could not be resolved.
    """

    path: str
    chain: list[TreeNode] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.chain)

    @property
    def active(self) -> TreeNode | None:
        """The node to highlight, or None when nothing matches."""
        return self.chain[-1] if self.chain else None

    @property
    def expanded_paths(self) -> set[str]:
        """Paths of the ancestors that must be expanded to show the node."""
        return {node.path for node in self.chain[:-1]}

    def is_active(self, path: str) -> bool:
        """Whether the node at ``path`` is the highlighted one."""
        active = self.active
        return active is not None and join_path(split_path(path)) == active.path


def resolve_active_path(current_path: str, tree: TreeNode | None) -> ActivePath:
    """Locate ``current_path`` in ``tree`` for highlighting and expansion.

    Resolution never raises: a missing tree or a segment without a matching
    child (stale tree, concurrent delete) yields an unresolved ActivePath
    and the caller shows no highlight.

    Args:
        current_path: The displayed directory ("." for the root).
        tree: The cached tree, or None when it is not available.

    Returns:
        The resolved chain of nodes.
    """
    if tree is None:
        return ActivePath(path=current_path)

    chain = [tree]
    node = tree
    for part in split_path(current_path):
        child = node.children.get(part)
        if child is None:
            logger.debug("Active path %r not in cached tree (missing %r)", current_path, part)
            return ActivePath(path=current_path)
        chain.append(child)
        node = child
    return ActivePath(path=current_path, chain=chain)
