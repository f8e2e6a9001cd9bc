"""
Core dependencies shared by the routers: store handle, identity and services
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from roster.config import settings
from roster.database.supabase_client import Store, get_store
from roster.modules.auth.service import AuthService
from roster.modules.discover.session import RosterSessionRegistry
from roster.modules.groups.service import GroupService
from roster.modules.memberships.service import MembershipService
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

roster_sessions = RosterSessionRegistry(
    ttl_seconds=settings.roster_session_ttl_seconds,
    max_sessions=settings.roster_session_max,
)


def get_auth_service(store: Store = Depends(get_store)) -> AuthService:
    return AuthService(store.client)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    return await auth_service.get_current_user(credentials.credentials)


def get_group_service(store: Store = Depends(get_store)) -> GroupService:
    return GroupService(store)


def get_membership_service(store: Store = Depends(get_store)) -> MembershipService:
    return MembershipService(store)


def get_roster_sessions() -> RosterSessionRegistry:
    return roster_sessions
