from abc import ABC, abstractmethod
from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional, List, Dict

class NodeType(Enum):
    FILE = auto()
    FOLDER = auto()

class Audience(Enum):
    ANYONE = auto()
    ANYONE_WITH_LINK = auto()

class AccessLevel(Enum):
    NONE = auto()
    VIEW = auto()
    EDIT = auto()

@dataclass
class NodeResource:
    id: str
    name: str
    type: NodeType
    extra: Optional[Dict[str, Any]] = None

@dataclass
class Grantee:
    email: str
    role: str = ""
    permission_id: Optional[str] = None


class NodeUnavailable(Exception):
    """Node could not be fetched or mutated (denied, transient API fault)."""

    def __init__(self, node_id: str, message: str = ""):
        super().__init__(f"{node_id}: {message}" if message else node_id)
        self.node_id = node_id


class NodeNotFound(NodeUnavailable):
    pass


class ISharingProvider(ABC):
    """
    Abstract Base Class for storage backends whose nodes carry sharing grants.
    Node ids are opaque strings owned by the backend.
    """

    @abstractmethod
    def get_node(self, node_id: str) -> NodeResource:
        """Fetch a node by id. Raises NodeNotFound if it is gone."""
        pass

    @abstractmethod
    def list_child_folders(self, folder_id: str) -> List[str]:
        """Ids of the direct subfolders of a folder."""
        pass

    @abstractmethod
    def list_child_files(self, folder_id: str) -> List[str]:
        """Ids of the files directly inside a folder."""
        pass

    @abstractmethod
    def set_public_access(self, node: NodeResource, audience: Audience, level: AccessLevel) -> None:
        """Set link/public access for an audience class."""
        pass

    @abstractmethod
    def list_editors(self, node: NodeResource) -> List[Grantee]:
        pass

    @abstractmethod
    def list_viewers(self, node: NodeResource) -> List[Grantee]:
        pass

    @abstractmethod
    def revoke_editor(self, node: NodeResource, email: str) -> None:
        pass

    @abstractmethod
    def revoke_viewer(self, node: NodeResource, email: str) -> None:
        pass


class ProviderConnectionError(Exception):
    """Credentials missing or rejected while building a provider client."""
    pass
