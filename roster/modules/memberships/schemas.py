from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import datetime


class GroupMembershipResponse(BaseModel):
    group_id: str
    user_id: str
    created_at: datetime
    
    class Config:
        from_attributes = True


class MembershipCheckResponse(BaseModel):
    group_id: str
    user_id: str
    is_member: bool


class MemberCountResponse(BaseModel):
    group_id: str
    member_count: int


class MemberCountsRequest(BaseModel):
    group_ids: List[str] = Field(..., max_length=500)


class MemberCountsResponse(BaseModel):
    counts: Dict[str, int]
