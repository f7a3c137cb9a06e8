import logging
from typing import List, Dict

import httplib2
from google.auth.exceptions import TransportError
from googleapiclient.errors import HttpError

from .interface import (
    ISharingProvider, NodeResource, NodeType, Grantee,
    Audience, AccessLevel, NodeNotFound, NodeUnavailable
)

logger = logging.getLogger("google_provider")

FOLDER_MIME = 'application/vnd.google-apps.folder'
EDITOR_ROLES = ("writer", "fileOrganizer", "organizer")
VIEWER_ROLES = ("reader", "commenter")
GRANTEE_TYPES = ("user", "group")

# "Anyone" = discoverable public; "anyone with the link" = link-only
_DISCOVERY = {
    Audience.ANYONE: True,
    Audience.ANYONE_WITH_LINK: False,
}
_LEVEL_ROLE = {
    AccessLevel.VIEW: "reader",
    AccessLevel.EDIT: "writer",
}


class GoogleDriveProvider(ISharingProvider):
    def __init__(self, service, page_size: int = 1000):
        self.service = service
        self.page_size = page_size

    def _execute(self, request, node_id: str) -> Dict:
        try:
            return request.execute()
        except HttpError as e:
            status = getattr(e.resp, 'status', None)
            if status == 404:
                raise NodeNotFound(node_id, "not found") from e
            raise NodeUnavailable(node_id, f"HTTP {status}: {e}") from e
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            # Timeouts, resets and token refresh failures
            raise NodeUnavailable(node_id, f"transport error: {e!r}") from e

    def get_node(self, node_id: str) -> NodeResource:
        item = self._execute(
            self.service.files().get(
                fileId=node_id, fields="id, name, mimeType, trashed", supportsAllDrives=True
            ),
            node_id
        )
        if item.get('trashed'):
            raise NodeNotFound(node_id, "in trash")
        return NodeResource(
            id=item['id'],
            name=item.get('name', ''),
            type=NodeType.FOLDER if item.get('mimeType') == FOLDER_MIME else NodeType.FILE,
            extra={'mimeType': item.get('mimeType')}
        )

    def _list_children(self, folder_id: str, folders: bool) -> List[str]:
        op = "=" if folders else "!="
        query = f"'{folder_id}' in parents and trashed = false and mimeType {op} '{FOLDER_MIME}'"
        ids = []
        page_token = None
        while True:
            results = self._execute(
                self.service.files().list(
                    q=query,
                    fields="nextPageToken, files(id)",
                    pageSize=self.page_size,
                    pageToken=page_token,
                    supportsAllDrives=True,
                    includeItemsFromAllDrives=True
                ),
                folder_id
            )
            ids.extend(item['id'] for item in results.get('files', []))
            page_token = results.get('nextPageToken')
            if not page_token:
                break
        return ids

    def list_child_folders(self, folder_id: str) -> List[str]:
        return self._list_children(folder_id, folders=True)

    def list_child_files(self, folder_id: str) -> List[str]:
        return self._list_children(folder_id, folders=False)

    def _permissions(self, node_id: str) -> List[Dict]:
        perms = []
        page_token = None
        while True:
            results = self._execute(
                self.service.permissions().list(
                    fileId=node_id,
                    fields="nextPageToken, permissions(id, type, role, emailAddress, allowFileDiscovery)",
                    pageToken=page_token,
                    supportsAllDrives=True
                ),
                node_id
            )
            perms.extend(results.get('permissions', []))
            page_token = results.get('nextPageToken')
            if not page_token:
                break
        return perms

    def _delete_permission(self, node_id: str, permission_id: str):
        self._execute(
            self.service.permissions().delete(
                fileId=node_id, permissionId=permission_id, supportsAllDrives=True
            ),
            node_id
        )

    def set_public_access(self, node: NodeResource, audience: Audience, level: AccessLevel) -> None:
        discoverable = _DISCOVERY[audience]
        existing = [
            p for p in self._permissions(node.id)
            if p.get('type') == 'anyone' and bool(p.get('allowFileDiscovery', False)) == discoverable
        ]
        for perm in existing:
            if level != AccessLevel.NONE and perm.get('role') == _LEVEL_ROLE[level]:
                return
            logger.debug(f"Deleting {audience.name} permission {perm['id']} on {node.id}")
            self._delete_permission(node.id, perm['id'])

        if level != AccessLevel.NONE:
            self._execute(
                self.service.permissions().create(
                    fileId=node.id,
                    body={"type": "anyone", "role": _LEVEL_ROLE[level], "allowFileDiscovery": discoverable},
                    supportsAllDrives=True
                ),
                node.id
            )

    def _grantees(self, node_id: str, roles) -> List[Grantee]:
        return [
            Grantee(email=p.get('emailAddress', ''), role=p['role'], permission_id=p['id'])
            for p in self._permissions(node_id)
            if p.get('type') in GRANTEE_TYPES and p.get('role') in roles
        ]

    def list_editors(self, node: NodeResource) -> List[Grantee]:
        return self._grantees(node.id, EDITOR_ROLES)

    def list_viewers(self, node: NodeResource) -> List[Grantee]:
        return self._grantees(node.id, VIEWER_ROLES)

    def _revoke(self, node: NodeResource, email: str, roles):
        target = email.lower()
        for grantee in self._grantees(node.id, roles):
            if grantee.email.lower() == target:
                self._delete_permission(node.id, grantee.permission_id)

    def revoke_editor(self, node: NodeResource, email: str) -> None:
        self._revoke(node, email, EDITOR_ROLES)

    def revoke_viewer(self, node: NodeResource, email: str) -> None:
        self._revoke(node, email, VIEWER_ROLES)
