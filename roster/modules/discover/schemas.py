from enum import Enum
from pydantic import BaseModel
from typing import Dict, List, Optional

from roster.modules.groups.schemas import GroupResponse


class SortKey(str, Enum):
    popular = "popular"  # member count, highest first
    newest = "newest"  # created_at, newest first
    name = "name"  # alphabetical


class RosterView(BaseModel):
    groups: List[GroupResponse]
    member_counts: Dict[str, int]
    my_memberships: List[str]
    query: Optional[str] = None
    sort: SortKey = SortKey.popular


class RosterMutationResponse(BaseModel):
    group_id: str
    is_member: bool
    member_count: int
