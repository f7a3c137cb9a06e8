import logging
from typing import Callable, List, Optional, Tuple

from providers.interface import (
    ISharingProvider, NodeResource, NodeType, Audience, AccessLevel, Grantee, NodeUnavailable
)
from logger_setup import format_api_error
from .types import NodeResult, NodeOutcome

logger = logging.getLogger("permission_reset")

STEP_PUBLIC_ACCESS = "public_access"
STEP_EDITORS = "editors"
STEP_VIEWERS = "viewers"


class PermissionStepFailure(Exception):
    def __init__(self, node_id: str, step: str, cause: Exception):
        super().__init__(f"Step '{step}' failed on {node_id}: {cause}")
        self.node_id = node_id
        self.step = step
        self.cause = cause


class PermissionResetter:
    """
    Strips public access and every editor/viewer grant from a node.

    The three steps run independently: a failing step is logged and the
    others still run. Running the reset twice leaves the same end state.
    """

    def __init__(self, provider: ISharingProvider, dry_run: bool = False):
        self.provider = provider
        self.dry_run = dry_run

    def reset(self, node_id: str, node_type: NodeType) -> NodeResult:
        try:
            node = self.provider.get_node(node_id)
        except NodeUnavailable as e:
            logger.warning(f"Node {node_id} unavailable, skipping reset: {e}")
            return NodeResult(node_id, node_type, NodeOutcome.UNAVAILABLE, reason=str(e))
        return self.reset_node(node)

    def reset_node(self, node: NodeResource) -> NodeResult:
        steps: List[Tuple[str, Callable[[NodeResource], int]]] = [
            (STEP_PUBLIC_ACCESS, self._clear_public_access),
            (STEP_EDITORS, self._revoke_editors),
            (STEP_VIEWERS, self._revoke_viewers),
        ]
        revoked = 0
        failures: List[PermissionStepFailure] = []
        for name, step in steps:
            count, failure = self._run_step(name, step, node)
            revoked += count
            if failure:
                failures.append(failure)

        if failures:
            return NodeResult(
                node.id, node.type, NodeOutcome.PARTIAL,
                reason="; ".join(str(f.cause) for f in failures),
                failed_steps=[f.step for f in failures],
                revoked=revoked
            )
        if revoked:
            logger.info(f"Reset {node.type.name.lower()} {node.id} ({node.name}): {revoked} grant(s) removed")
        return NodeResult(node.id, node.type, NodeOutcome.RESET, revoked=revoked)

    def _run_step(self, name: str, step: Callable[[NodeResource], int],
                  node: NodeResource) -> Tuple[int, Optional[PermissionStepFailure]]:
        try:
            return step(node), None
        except (NodeUnavailable, NotImplementedError) as e:
            failure = PermissionStepFailure(node.id, name, e)
            logger.error(str(failure))
            logger.debug(format_api_error(e))
            return 0, failure

    def _clear_public_access(self, node: NodeResource) -> int:
        errors = []
        for audience in (Audience.ANYONE, Audience.ANYONE_WITH_LINK):
            if self.dry_run:
                logger.info(f"[dry-run] Would set {audience.name} access to NONE on {node.id}")
                continue
            try:
                self.provider.set_public_access(node, audience, AccessLevel.NONE)
            except NodeUnavailable as e:
                errors.append(e)
        if errors:
            raise errors[0]
        return 0

    def _revoke_all(self, node: NodeResource, grantees: List[Grantee],
                    revoke: Callable[[NodeResource, str], None], label: str) -> int:
        revoked = 0
        errors = []
        for grantee in grantees:
            if not grantee.email:
                continue
            if self.dry_run:
                logger.info(f"[dry-run] Would revoke {label} {grantee.email} on {node.id}")
                revoked += 1
                continue
            try:
                revoke(node, grantee.email)
                revoked += 1
                logger.debug(f"Revoked {label} {grantee.email} on {node.id}")
            except NodeUnavailable as e:
                errors.append(e)
        if errors:
            raise errors[0]
        return revoked

    def _revoke_editors(self, node: NodeResource) -> int:
        return self._revoke_all(node, self.provider.list_editors(node), self.provider.revoke_editor, "editor")

    def _revoke_viewers(self, node: NodeResource) -> int:
        return self._revoke_all(node, self.provider.list_viewers(node), self.provider.revoke_viewer, "viewer")
