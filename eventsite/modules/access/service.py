"""
Project access resolution.

An AccessSession holds the resolution state of one client session: the slug it
last resolved, whether the failure for that slug was already notified, and a
generation counter. Switching slug or closing the session starts a new
generation; results of a superseded generation are discarded without touching
session state. Concurrent resolutions of the same slug share a generation and
all commit.
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from eventsite.config import settings
from eventsite.core.notifications import Notifier
from eventsite.database.gateway import BackendGateway
from eventsite.modules.access.schemas import Permissions, ProjectAccess
from eventsite.modules.projects.service import ProjectService

logger = logging.getLogger(__name__)

_MAX_SESSIONS = 1000


def derive_permissions(role: Optional[str]) -> Permissions:
    is_owner = role == "owner"
    is_admin = role == "admin" or is_owner
    can_edit = role == "editor" or is_admin
    return Permissions(
        is_owner=is_owner,
        is_admin=is_admin,
        can_edit=can_edit,
        can_manage_settings=is_admin,
        can_manage_members=is_admin,
    )


class AccessSession:
    def __init__(
        self,
        gateway: BackendGateway,
        notifier: Optional[Notifier] = None,
        redirect_path: Optional[str] = None,
    ):
        self.gateway = gateway
        self.projects = ProjectService(gateway)
        self.notifier = notifier or Notifier()
        self.redirect_path = redirect_path or settings.projects_redirect_path
        self.access = ProjectAccess(loading=True)
        self.redirects: List[str] = []
        self._slug: Optional[str] = None
        self._notified = False
        self._generation = 0
        self._closed = False

    @property
    def slug(self) -> Optional[str]:
        return self._slug

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear the session down; in-flight resolutions are discarded"""
        self._closed = True
        self._generation += 1

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def resolve_access(self, project_slug: Optional[str], identity: Optional[Dict[str, Any]]) -> Optional[ProjectAccess]:
        """Resolve the caller's role in the project.

        Returns the committed ProjectAccess, or None when this resolution was
        superseded before it finished.
        """
        if self._closed:
            return None
        if project_slug != self._slug:
            self._slug = project_slug
            self._notified = False
            self._generation += 1
        generation = self._generation
        self.access = ProjectAccess(loading=True)

        if not identity or not project_slug:
            return self._commit(generation, ProjectAccess())

        try:
            project = await self.projects.get_by_slug(project_slug)
            if not self._is_current(generation):
                return None
            if project is None:
                return self._fail(
                    generation,
                    "not_found",
                    title="Project not found",
                    description=f"No project matches '{project_slug}'",
                    redirect=True,
                )

            membership = await self.gateway.select_one(
                "project_members",
                {"project_id": project.id, "user_id": identity["id"]},
                columns="role",
            )
            if not self._is_current(generation):
                return None
            if not membership:
                return self._fail(
                    generation,
                    "not_authorized",
                    title="Access denied",
                    description="You are not a member of this project",
                    redirect=True,
                    project_id=project.id,
                )

            role = membership.get("role")
            return self._commit(generation, ProjectAccess(
                project_id=project.id,
                role=role,
                **derive_permissions(role).model_dump(),
            ))
        except Exception as e:
            if not self._is_current(generation):
                return None
            logger.error(f"Access check error for project {project_slug}: {e}")
            # No redirect: an unexpected failure does not prove the caller is not a member
            return self._fail(
                generation,
                "error",
                title="Something went wrong",
                description=str(e),
                redirect=False,
            )

    def _commit(self, generation: int, access: ProjectAccess) -> Optional[ProjectAccess]:
        if not self._is_current(generation):
            return None
        self.access = access
        return access

    def _fail(
        self,
        generation: int,
        error: str,
        title: str,
        description: str,
        redirect: bool,
        project_id: Optional[str] = None,
    ) -> Optional[ProjectAccess]:
        access = ProjectAccess(project_id=project_id, error=error)
        if not self._notified:
            self._notified = True
            access.notifications = [self.notifier.notify(title, description, variant="destructive")]
            if redirect:
                access.redirect_to = self.redirect_path
                self.redirects.append(self.redirect_path)
        return self._commit(generation, access)


class AccessSessionRegistry:
    """Per-session access state, keyed by session key, bounded in size"""

    def __init__(self, gateway: BackendGateway, max_sessions: int = _MAX_SESSIONS):
        self.gateway = gateway
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, AccessSession]" = OrderedDict()

    def get(self, session_key: str) -> AccessSession:
        session = self._sessions.get(session_key)
        if session is not None:
            self._sessions.move_to_end(session_key)
            return session
        session = AccessSession(self.gateway)
        self._sessions[session_key] = session
        while len(self._sessions) > self.max_sessions:
            _, evicted = self._sessions.popitem(last=False)
            evicted.close()
        return session

    def close(self, session_key: str) -> None:
        session = self._sessions.pop(session_key, None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)
