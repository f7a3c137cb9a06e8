import logging
import dropbox
import requests
from dropbox.files import FileMetadata, FolderMetadata
from dropbox.sharing import MemberSelector, SharedLinkSettings, RequestedVisibility
from dropbox.exceptions import ApiError, DropboxException
from typing import Callable, List, Optional

from .interface import (
    ISharingProvider, NodeResource, NodeType, Grantee,
    Audience, AccessLevel, NodeNotFound, NodeUnavailable
)

logger = logging.getLogger("dropbox_provider")

ROOT_ID = ""


def _is_not_found(error: ApiError) -> bool:
    detail = getattr(error, 'error', None)
    try:
        return detail.is_path() and detail.get_path().is_not_found()
    except AttributeError:
        # Error unions without a path branch
        return False


class DropboxProvider(ISharingProvider):
    """
    Sharing backend for Dropbox. Node ids are Dropbox ids ("id:...");
    the empty string is the account root.
    Public access maps to shared links, editors/viewers to file or
    shared-folder members.
    """

    def __init__(self, dbx: dropbox.Dropbox):
        self.dbx = dbx

    def _call(self, node_id: str, fn: Callable, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ApiError as e:
            if _is_not_found(e):
                raise NodeNotFound(node_id, "not found") from e
            raise NodeUnavailable(node_id, f"API error: {e.error}") from e
        except DropboxException as e:
            raise NodeUnavailable(node_id, str(e)) from e
        except (requests.exceptions.RequestException, OSError) as e:
            raise NodeUnavailable(node_id, f"transport error: {e!r}") from e

    def get_node(self, node_id: str) -> NodeResource:
        if node_id == ROOT_ID:
            return NodeResource(id=ROOT_ID, name="/", type=NodeType.FOLDER)

        md = self._call(node_id, self.dbx.files_get_metadata, node_id)
        if isinstance(md, FolderMetadata):
            sharing_info = getattr(md, 'sharing_info', None)
            return NodeResource(
                id=md.id,
                name=md.name,
                type=NodeType.FOLDER,
                extra={
                    'path': md.path_display,
                    'shared_folder_id': getattr(md, 'shared_folder_id', None) or
                    getattr(sharing_info, 'shared_folder_id', None)
                }
            )
        if isinstance(md, FileMetadata):
            return NodeResource(id=md.id, name=md.name, type=NodeType.FILE, extra={'path': md.path_display})
        # DeletedMetadata
        raise NodeNotFound(node_id, "deleted")

    def _list_entries(self, folder_id: str):
        res = self._call(folder_id, self.dbx.files_list_folder, folder_id)
        while True:
            for entry in res.entries:
                yield entry
            if not res.has_more:
                break
            res = self._call(folder_id, self.dbx.files_list_folder_continue, res.cursor)

    def list_child_folders(self, folder_id: str) -> List[str]:
        return [e.id for e in self._list_entries(folder_id) if isinstance(e, FolderMetadata)]

    def list_child_files(self, folder_id: str) -> List[str]:
        return [e.id for e in self._list_entries(folder_id) if isinstance(e, FileMetadata)]

    def _shared_links(self, node_id: str) -> list:
        links = []
        res = self._call(node_id, self.dbx.sharing_list_shared_links, path=node_id, direct_only=True)
        while True:
            links.extend(res.links)
            if not res.has_more:
                break
            res = self._call(node_id, self.dbx.sharing_list_shared_links,
                             path=node_id, cursor=res.cursor, direct_only=True)
        return links

    @staticmethod
    def _is_public_link(link) -> bool:
        visibility = getattr(getattr(link, 'link_permissions', None), 'resolved_visibility', None)
        return visibility is not None and visibility.is_public()

    def set_public_access(self, node: NodeResource, audience: Audience, level: AccessLevel) -> None:
        if node.id == ROOT_ID:
            return
        if level == AccessLevel.NONE:
            for link in self._shared_links(node.id):
                # Every Dropbox link is reachable by anyone holding it
                if audience == Audience.ANYONE and not self._is_public_link(link):
                    continue
                logger.debug(f"Revoking shared link on {node.id}")
                self._call(node.id, self.dbx.sharing_revoke_shared_link, link.url)
            return

        if level == AccessLevel.EDIT:
            raise NotImplementedError("Dropbox shared links are view-only")
        if self._shared_links(node.id):
            return
        settings = SharedLinkSettings(requested_visibility=RequestedVisibility.public)
        self._call(node.id, self.dbx.sharing_create_shared_link_with_settings, node.id, settings)

    def _members(self, node: NodeResource) -> list:
        """(email, access_type) pairs for users and email invitees."""
        if node.id == ROOT_ID:
            return []

        if node.type == NodeType.FOLDER:
            shared_folder_id = (node.extra or {}).get('shared_folder_id')
            if not shared_folder_id:
                return []
            res = self._call(node.id, self.dbx.sharing_list_folder_members, shared_folder_id)
            more = lambda cursor: self._call(node.id, self.dbx.sharing_list_folder_members_continue, cursor)
        else:
            res = self._call(node.id, self.dbx.sharing_list_file_members, node.id, include_inherited=False)
            more = lambda cursor: self._call(node.id, self.dbx.sharing_list_file_members_continue, cursor)

        members = []
        while True:
            for info in res.users:
                members.append((getattr(info.user, 'email', '') or '', info.access_type))
            for info in res.invitees:
                invitee = info.invitee
                email = invitee.get_email() if invitee.is_email() else ''
                members.append((email, info.access_type))
            if not res.cursor:
                break
            res = more(res.cursor)
        return members

    def list_editors(self, node: NodeResource) -> List[Grantee]:
        return [Grantee(email=email, role="editor")
                for email, access in self._members(node) if access.is_editor()]

    def list_viewers(self, node: NodeResource) -> List[Grantee]:
        return [Grantee(email=email, role="viewer")
                for email, access in self._members(node)
                if access.is_viewer() or access.is_viewer_no_comment()]

    def _remove_member(self, node: NodeResource, email: str):
        member = MemberSelector.email(email)
        if node.type == NodeType.FOLDER:
            shared_folder_id: Optional[str] = (node.extra or {}).get('shared_folder_id')
            if not shared_folder_id:
                return
            self._call(node.id, self.dbx.sharing_remove_folder_member, shared_folder_id, member, False)
        else:
            self._call(node.id, self.dbx.sharing_remove_file_member_2, node.id, member)

    def revoke_editor(self, node: NodeResource, email: str) -> None:
        self._remove_member(node, email)

    def revoke_viewer(self, node: NodeResource, email: str) -> None:
        self._remove_member(node, email)
