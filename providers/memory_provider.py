import logging
from typing import Dict, Iterable, List, Optional, Set

from .interface import (
    ISharingProvider, NodeResource, NodeType, Grantee,
    Audience, AccessLevel, NodeNotFound, NodeUnavailable
)

logger = logging.getLogger("memory_provider")


class _Node:
    def __init__(self, node_id: str, name: str, node_type: NodeType):
        self.id = node_id
        self.name = name
        self.type = node_type
        self.child_folders: List[str] = []
        self.child_files: List[str] = []
        self.public: Dict[Audience, AccessLevel] = {
            Audience.ANYONE: AccessLevel.NONE,
            Audience.ANYONE_WITH_LINK: AccessLevel.NONE,
        }
        self.editors: List[str] = []
        self.viewers: List[str] = []


class MemoryProvider(ISharingProvider):
    """
    In-memory storage tree with sharing grants.
    Used for demo runs and as the backend in tests. Failures can be injected
    per node (unavailable) or per operation name (failing_ops).
    """

    def __init__(self):
        self._nodes: Dict[str, _Node] = {}
        self.unavailable: Set[str] = set()
        self.failing_ops: Dict[str, Set[str]] = {}
        self.calls: List[tuple] = []

    # Tree building

    def add_folder(self, folder_id: str, parent_id: Optional[str] = None, name: Optional[str] = None) -> str:
        self._nodes[folder_id] = _Node(folder_id, name or folder_id, NodeType.FOLDER)
        if parent_id is not None:
            self._nodes[parent_id].child_folders.append(folder_id)
        return folder_id

    def add_file(self, file_id: str, parent_id: str, name: Optional[str] = None) -> str:
        self._nodes[file_id] = _Node(file_id, name or file_id, NodeType.FILE)
        self._nodes[parent_id].child_files.append(file_id)
        return file_id

    def link(self, child_id: str, parent_id: str):
        """Attach an existing node under a second parent."""
        child = self._nodes[child_id]
        parent = self._nodes[parent_id]
        if child.type == NodeType.FOLDER:
            parent.child_folders.append(child_id)
        else:
            parent.child_files.append(child_id)

    def share(self, node_id: str, editors: Iterable[str] = (), viewers: Iterable[str] = (),
              anyone: AccessLevel = AccessLevel.NONE, anyone_with_link: AccessLevel = AccessLevel.NONE):
        node = self._nodes[node_id]
        node.editors.extend(e for e in editors if e not in node.editors)
        node.viewers.extend(v for v in viewers if v not in node.viewers)
        node.public[Audience.ANYONE] = anyone
        node.public[Audience.ANYONE_WITH_LINK] = anyone_with_link

    def remove(self, node_id: str):
        """Delete a node; ids that still reference it will raise NodeNotFound."""
        self._nodes.pop(node_id, None)

    def grants(self, node_id: str) -> dict:
        node = self._nodes[node_id]
        return {
            "public": {a.name: l.name for a, l in node.public.items()},
            "editors": sorted(node.editors),
            "viewers": sorted(node.viewers),
        }

    def is_shared(self, node_id: str) -> bool:
        node = self._nodes[node_id]
        return bool(node.editors or node.viewers or
                    any(level != AccessLevel.NONE for level in node.public.values()))

    @property
    def folder_ids(self) -> Set[str]:
        return {n.id for n in self._nodes.values() if n.type == NodeType.FOLDER}

    @property
    def file_ids(self) -> Set[str]:
        return {n.id for n in self._nodes.values() if n.type == NodeType.FILE}

    # ISharingProvider

    def _lookup(self, node_id: str, op: str) -> _Node:
        self.calls.append((op, node_id))
        if node_id in self.unavailable:
            raise NodeUnavailable(node_id, "access denied")
        if op in self.failing_ops.get(node_id, set()):
            raise NodeUnavailable(node_id, f"{op} failed")
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFound(node_id, "not found")
        return node

    def get_node(self, node_id: str) -> NodeResource:
        node = self._lookup(node_id, "get_node")
        return NodeResource(id=node.id, name=node.name, type=node.type)

    def list_child_folders(self, folder_id: str) -> List[str]:
        return list(self._lookup(folder_id, "list_child_folders").child_folders)

    def list_child_files(self, folder_id: str) -> List[str]:
        return list(self._lookup(folder_id, "list_child_files").child_files)

    def set_public_access(self, node: NodeResource, audience: Audience, level: AccessLevel) -> None:
        self._lookup(node.id, "set_public_access").public[audience] = level

    def list_editors(self, node: NodeResource) -> List[Grantee]:
        return [Grantee(email=e, role="editor") for e in self._lookup(node.id, "list_editors").editors]

    def list_viewers(self, node: NodeResource) -> List[Grantee]:
        return [Grantee(email=v, role="viewer") for v in self._lookup(node.id, "list_viewers").viewers]

    def revoke_editor(self, node: NodeResource, email: str) -> None:
        target = self._lookup(node.id, "revoke_editor")
        if email in target.editors:
            target.editors.remove(email)

    def revoke_viewer(self, node: NodeResource, email: str) -> None:
        target = self._lookup(node.id, "revoke_viewer")
        if email in target.viewers:
            target.viewers.remove(email)
