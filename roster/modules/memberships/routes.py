from fastapi import APIRouter, Depends
from roster.core.dependencies import get_current_user, get_membership_service
from roster.modules.memberships.schemas import (
    GroupMembershipResponse, MembershipCheckResponse,
    MemberCountResponse, MemberCountsRequest, MemberCountsResponse
)
from roster.modules.memberships.service import MembershipService
from typing import List, Dict

router = APIRouter(tags=["memberships"])


@router.get("/groups/{group_id}/members", response_model=List[GroupMembershipResponse])
async def list_members(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """List members of a group, oldest member first"""
    return await service.list_memberships_by_group(group_id)


@router.get("/groups/{group_id}/members/count", response_model=MemberCountResponse)
async def count_members(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """Number of members in a group"""
    return MemberCountResponse(group_id=group_id, member_count=await service.count_by_group(group_id))


@router.get("/groups/{group_id}/members/{user_id}", response_model=MembershipCheckResponse)
async def check_member(
    group_id: str,
    user_id: str,
    current_user: Dict = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """Whether user_id is a member of the group"""
    return MembershipCheckResponse(
        group_id=group_id,
        user_id=user_id,
        is_member=await service.is_member(user_id, group_id),
    )


@router.post("/memberships/counts", response_model=MemberCountsResponse)
async def count_members_batch(
    body: MemberCountsRequest,
    current_user: Dict = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """Member counts for several groups; groups without members report 0"""
    return MemberCountsResponse(counts=await service.count_by_groups(body.group_ids))


@router.get("/users/me/memberships", response_model=List[GroupMembershipResponse])
async def list_my_memberships(
    current_user: Dict = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """Groups the current user belongs to, most recently joined first"""
    return await service.list_memberships_by_user(current_user["id"])


@router.get("/users/{user_id}/memberships", response_model=List[GroupMembershipResponse])
async def list_user_memberships(
    user_id: str,
    current_user: Dict = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service)
):
    """Groups a user belongs to, most recently joined first"""
    return await service.list_memberships_by_user(user_id)
