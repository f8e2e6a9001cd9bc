from fastapi import APIRouter, Depends
from roster.config import settings
from roster.core.dependencies import (
    get_current_user, get_group_service, get_membership_service, get_roster_sessions
)
from roster.modules.discover.schemas import RosterView, RosterMutationResponse, SortKey
from roster.modules.discover.session import RosterSession, RosterSessionRegistry
from roster.modules.groups.service import GroupService
from roster.modules.memberships.service import MembershipService
from typing import Dict, Optional

router = APIRouter(prefix="/discover", tags=["discover"])


async def _session(
    user: Dict,
    registry: RosterSessionRegistry,
    groups: GroupService,
    memberships: MembershipService,
    refresh: bool = False,
) -> RosterSession:
    return await registry.get_session(
        user["id"],
        groups,
        memberships,
        page_size=settings.discover_page_size,
        refresh=refresh,
    )


@router.get("", response_model=RosterView)
async def discover(
    q: Optional[str] = None,
    sort: SortKey = SortKey.popular,
    refresh: bool = False,
    current_user: Dict = Depends(get_current_user),
    registry: RosterSessionRegistry = Depends(get_roster_sessions),
    groups: GroupService = Depends(get_group_service),
    memberships: MembershipService = Depends(get_membership_service)
):
    """Groups with member counts and the caller's memberships. Filtering and sorting use the cached roster; refresh=true reloads it."""
    session = await _session(current_user, registry, groups, memberships, refresh=refresh)
    return session.view(query=q, sort=sort)


@router.post("/{group_id}/join", response_model=RosterMutationResponse)
async def join_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    registry: RosterSessionRegistry = Depends(get_roster_sessions),
    groups: GroupService = Depends(get_group_service),
    memberships: MembershipService = Depends(get_membership_service)
):
    """Join a group as the current user"""
    session = await _session(current_user, registry, groups, memberships)
    return await session.join(group_id)


@router.post("/{group_id}/leave", response_model=RosterMutationResponse)
async def leave_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    registry: RosterSessionRegistry = Depends(get_roster_sessions),
    groups: GroupService = Depends(get_group_service),
    memberships: MembershipService = Depends(get_membership_service)
):
    """Leave a group as the current user; leaving a group you are not in is not an error"""
    session = await _session(current_user, registry, groups, memberships)
    return await session.leave(group_id)
