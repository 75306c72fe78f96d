from __future__ import annotations

import logging
import secrets
from datetime import date
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import AuthenticationError, NotFoundError, PermissionDeniedError, WorkflowError
from qms.core.security import get_password_hash, verify_password
from qms.core.settings import get_app_settings
from qms.db.models.enums import UserRole, UserStatus
from qms.db.models.organization import User
from qms.repositories.security import SecurityRepository
from qms.schemas.auth import OrgChartNode, SignupRequest, UserCreate, UserRead, UserUpdate
from qms.services.base import BaseService, is_admin, is_super_admin

logger = logging.getLogger(__name__)

ORG_CHART_HIDDEN_STATUSES = [UserStatus.PENDING.value, UserStatus.OBSOLETE.value]


# PUBLIC_INTERFACE
def build_org_tree(people: Sequence[User]) -> List[OrgChartNode]:
    """
    Arrange people into reporting trees. Someone whose manager is among `people`
    hangs under that manager; everyone else starts a tree of their own. People in a
    reporting loop are shown as roots.
    """
    managers = {p.id: p.manager_id for p in people}
    nodes: Dict[str, OrgChartNode] = {p.id: OrgChartNode(user=UserRead.model_validate(p)) for p in people}
    roots: List[OrgChartNode] = []
    for person in people:
        node = nodes[person.id]
        manager = nodes.get(person.manager_id) if person.manager_id else None
        if manager is not None and not _in_reporting_loop(person.id, managers):
            manager.reports.append(node)
        else:
            roots.append(node)
    return roots


def _in_reporting_loop(person_id: str, managers: Dict[str, Optional[str]]) -> bool:
    seen = set()
    current = managers.get(person_id)
    while current in managers and current not in seen:
        if current == person_id:
            return True
        seen.add(current)
        current = managers[current]
    return False


class UserService(BaseService):
    """User lifecycle: registration, approval, activation and visibility rules."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = SecurityRepository(session)

    async def get(self, user_id: str) -> User:
        user = await self.repo.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    # PUBLIC_INTERFACE
    async def signup(self, payload: SignupRequest) -> User:
        """Register a Pending account; an administrator must approve it before sign-in."""
        if await self.repo.get_user_by_username(payload.username):
            raise WorkflowError("Username is already taken.")
        settings = get_app_settings()
        user = User(
            name=payload.name,
            username=payload.username,
            email=f"{payload.username}@{settings.USER_EMAIL_DOMAIN}",
            hashed_password=get_password_hash(payload.password),
            role=UserRole.USER.value,
            status=UserStatus.PENDING.value,
            department_id=payload.department_id,
            location_id=payload.location_id,
            joined_date=date.today(),
        )
        await self.repo.add(user)
        logger.info("New signup %s awaiting approval", payload.username)
        return await self._save(user)

    # PUBLIC_INTERFACE
    async def authenticate(self, username: str, password: str) -> User:
        """Validate credentials and account status for sign-in."""
        user = await self.repo.get_user_by_username(username)
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid username or password.")
        self._check_can_sign_in(user)
        return user

    # PUBLIC_INTERFACE
    async def authenticate_access_code(self, code: str) -> User:
        """
        Sign in as the super administrator with the configured access code.

        The first Super Admin is used; one is created when the store has none.
        """
        settings = get_app_settings()
        if not secrets.compare_digest(code, settings.SUPER_ADMIN_ACCESS_CODE):
            raise AuthenticationError("Invalid access code.")
        user = await self.repo.first_super_admin()
        if user is None:
            user = User(
                name="Super Admin",
                username="superadmin",
                email=f"superadmin@{settings.USER_EMAIL_DOMAIN}",
                role=UserRole.SUPER_ADMIN.value,
                status=UserStatus.ACTIVE.value,
                joined_date=date.today(),
            )
            await self.repo.add(user)
            user = await self._save(user)
            logger.info("Created super admin account on first access-code login")
        return user

    @staticmethod
    def _check_can_sign_in(user: User) -> None:
        if user.status == UserStatus.PENDING.value:
            raise PermissionDeniedError("Your account is pending approval by an administrator.")
        if user.status == UserStatus.INACTIVE.value:
            raise PermissionDeniedError("Your account has been deactivated.")
        if user.status == UserStatus.OBSOLETE.value:
            raise PermissionDeniedError("This account is no longer in use.")

    # PUBLIC_INTERFACE
    async def list_visible(self, actor: User) -> List[User]:
        """
        Users the actor may manage.

        Super Admin: everyone. Admin: everyone except Super Admins.
        Manager: direct reports only. User: nobody.
        """
        if is_super_admin(actor):
            return await self.repo.list_users()
        if actor.role == UserRole.ADMIN.value:
            return await self.repo.list_users(exclude_roles=[UserRole.SUPER_ADMIN.value])
        if actor.role == UserRole.MANAGER.value:
            return await self.repo.list_users(manager_id=actor.id)
        raise PermissionDeniedError("You do not have access to user management.")

    # PUBLIC_INTERFACE
    async def create(self, actor: User, payload: UserCreate) -> User:
        self._check_role_grant(actor, payload.role)
        if await self.repo.get_user_by_username(payload.username):
            raise WorkflowError("Username is already taken.")
        data = payload.model_dump(exclude={"password"})
        user = User(**data)
        if not user.email:
            user.email = f"{payload.username}@{get_app_settings().USER_EMAIL_DOMAIN}"
        if payload.password:
            user.hashed_password = get_password_hash(payload.password)
        if user.joined_date is None:
            user.joined_date = date.today()
        await self.repo.add(user)
        logger.info("User %s created by %s", payload.username, actor.id)
        return await self._save(user)

    # PUBLIC_INTERFACE
    async def update(self, actor: User, user_id: str, payload: UserUpdate) -> User:
        user = await self.get(user_id)
        self._check_can_manage(actor, user)
        changes = payload.model_dump(exclude_unset=True, exclude={"password"})
        if "role" in changes and changes["role"] is not None:
            self._check_role_grant(actor, changes["role"])
        for key, value in changes.items():
            setattr(user, key, value)
        if payload.password:
            user.hashed_password = get_password_hash(payload.password)
        return await self._save(user)

    # PUBLIC_INTERFACE
    async def approve(self, actor: User, user_id: str) -> User:
        """Pending -> Active."""
        user = await self.get(user_id)
        self._check_can_manage(actor, user)
        if user.status != UserStatus.PENDING.value:
            raise WorkflowError("Only pending accounts can be approved.")
        user.status = UserStatus.ACTIVE.value
        logger.info("User %s approved by %s", user.username, actor.id)
        return await self._save(user)

    # PUBLIC_INTERFACE
    async def toggle_status(self, actor: User, user_id: str) -> User:
        """Active <-> Inactive."""
        user = await self.get(user_id)
        self._check_can_manage(actor, user)
        if user.id == actor.id:
            raise WorkflowError("You cannot change the status of your own account.")
        if user.status == UserStatus.ACTIVE.value:
            user.status = UserStatus.INACTIVE.value
        elif user.status == UserStatus.INACTIVE.value:
            user.status = UserStatus.ACTIVE.value
        else:
            raise WorkflowError(f"Cannot toggle a user in status {user.status}.")
        logger.info("User %s is now %s", user.username, user.status)
        return await self._save(user)

    # PUBLIC_INTERFACE
    async def mark_obsolete(self, actor: User, user_id: str) -> User:
        """Retire an account; only inactive accounts can be made obsolete."""
        user = await self.get(user_id)
        self._check_can_manage(actor, user)
        if user.status != UserStatus.INACTIVE.value:
            raise WorkflowError("Only inactive users can be marked obsolete.")
        user.status = UserStatus.OBSOLETE.value
        return await self._save(user)

    @staticmethod
    def _check_role_grant(actor: User, role: str) -> None:
        if role == UserRole.SUPER_ADMIN.value and not is_super_admin(actor):
            raise PermissionDeniedError("Only a Super Admin can grant the Super Admin role.")

    @staticmethod
    def _check_can_manage(actor: User, target: User) -> None:
        if not is_admin(actor):
            raise PermissionDeniedError("Administrator access required.")
        if is_super_admin(target) and not is_super_admin(actor):
            raise PermissionDeniedError("Only a Super Admin can manage a Super Admin account.")

    # PUBLIC_INTERFACE
    async def org_chart_members(self, location_id: Optional[str] = None) -> List[User]:
        """Staff shown on the org chart, optionally for one site; pending and retired accounts are left out."""
        return await self.repo.list_users(location_id=location_id, exclude_statuses=ORG_CHART_HIDDEN_STATUSES)
