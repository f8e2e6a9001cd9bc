from fastapi import APIRouter, Depends, Query
from roster.config import settings
from roster.core.dependencies import get_current_user, get_group_service
from roster.core.exceptions import NotFoundError
from roster.modules.groups.schemas import GroupCreate, GroupUpdate, GroupResponse, GroupPage
from roster.modules.groups.service import GroupService
from typing import List, Dict, Optional

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    current_user: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group"""
    return await service.create_group(group_data)


@router.get("", response_model=GroupPage)
async def list_groups(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """List groups newest first; total is the number of groups overall"""
    return await service.list_groups(page=page, page_size=page_size)


@router.get("/search", response_model=List[GroupResponse])
async def search_groups(
    q: Optional[str] = None,
    current_user: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Search groups by name or description (case-insensitive)"""
    return await service.search_groups(q)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Get group by ID"""
    group = await service.read_group(group_id)
    if group is None:
        raise NotFoundError(f"Group {group_id} not found")
    return group


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    current_user: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Update group; omitted fields are left unchanged"""
    return await service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Delete group and its memberships"""
    await service.delete_group(group_id)
    return None
