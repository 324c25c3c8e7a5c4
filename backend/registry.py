# ============================================================
# registry.py — Identity & Role Registry
# ============================================================

import logging
from typing import List, Optional

from errors import AlreadyExists, NotFound
from models import OperatorProfile, Role
from policy import Operation, authorize, enforce, coerce_enum, require_text
from repository import Repository, to_profile

logger = logging.getLogger(__name__)


def role_of(row) -> Optional[Role]:
    return Role(row.role) if row is not None else None


class OperatorRegistry:
    """
    Maps caller identities to operator profiles.

    The first identity to register becomes the administrator; everyone
    after that starts as an analyst until an admin promotes them.
    """

    def __init__(self, repo: Repository):
        self.repo = repo

    async def register_self(self, caller: str, name: str) -> OperatorProfile:
        require_text(caller, "identity")
        require_text(name, "name")

        async with self.repo.transaction() as session:
            if await self.repo.get_operator(session, caller) is not None:
                raise AlreadyExists(f"Identity '{caller}' is already registered")

            enforce(authorize(None, Operation.REGISTER_SELF))

            role = Role.ADMIN if await self.repo.count_operators(session) == 0 else Role.ANALYST
            row = await self.repo.insert_operator(session, caller, name, role.value)
            return to_profile(row)

    async def get_profile(self, caller: Optional[str], identity: str) -> Optional[OperatorProfile]:
        async with self.repo.snapshot() as session:
            if identity == caller:
                enforce(authorize(None, Operation.VIEW_OWN_PROFILE))
                row = await self.repo.get_operator(session, identity)
                return to_profile(row) if row else None

            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.VIEW_PROFILE, f"operator {identity}"))

            row = await self.repo.get_operator(session, identity)
            return to_profile(row) if row else None

    async def get_my_profile(self, caller: Optional[str]) -> OperatorProfile:
        profile = await self.get_profile(caller, caller) if caller else None
        if profile is None:
            raise NotFound("Caller has no operator profile")
        return profile

    async def is_caller_admin(self, caller: Optional[str]) -> bool:
        async with self.repo.snapshot() as session:
            row = await self.repo.get_operator(session, caller)
            return role_of(row) == Role.ADMIN

    async def list_profiles(self, caller: Optional[str]) -> List[OperatorProfile]:
        async with self.repo.snapshot() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.LIST_PROFILES))
            return [to_profile(r) for r in await self.repo.list_operators(session)]

    async def set_role(self, caller: Optional[str], target: str, role) -> OperatorProfile:
        async with self.repo.transaction() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.SET_ROLE, f"operator {target}"))
            new_role = coerce_enum(Role, role, "role")

            target_row = await self.repo.get_operator(session, target)
            if target_row is None:
                raise NotFound(f"No operator registered for identity '{target}'")

            previous = target_row.role
            target_row.role = new_role.value
            await session.flush()

            if new_role != Role.ADMIN and await self.repo.count_admins(session) == 0:
                # Not blocked: the registry is non-empty, so nobody can bootstrap a new admin
                logger.warning(
                    f"⚠️ {caller} changed {target} from {previous} to {new_role.value}; "
                    f"no administrators remain"
                )

            logger.info(f"✅ Role of {target} set to {new_role.value} by {caller}")
            return to_profile(target_row)

