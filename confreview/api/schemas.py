"""
API 请求/响应 Pydantic 模型

Field aliases keep the camelCase JSON the web client sends.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Accounts ─────────────────────────────────────────────────────────────────

class SignupRequest(_CamelModel):
    name: str = Field("", description="显示名")
    email: str = Field("", description="登录邮箱，唯一")
    password: str = Field("", description="明文密码")
    role: Optional[str] = Field(None, description="仅允许 user")


class LoginRequest(_CamelModel):
    email: str = ""
    password: str = ""


class ChangePasswordRequest(_CamelModel):
    current_password: str = Field("", alias="currentPassword")
    new_password: str = Field("", alias="newPassword")


class CreateReviewerRequest(_CamelModel):
    name: str = ""
    email: str = ""
    track: str = ""
    password: Optional[str] = Field(None, description="为空时自动生成")


class UpdateReviewerRequest(_CamelModel):
    name: str = ""
    email: str = ""
    track: str = ""


# ── Assignment & review ──────────────────────────────────────────────────────

class AssignRequest(_CamelModel):
    paper_id: Optional[int] = Field(None, alias="paperId")
    reviewer_id: Optional[int] = Field(None, alias="reviewerId")


class ReassignRequest(_CamelModel):
    reviewer_id: Optional[int] = Field(None, alias="reviewerId", description="新的审稿人 ID")


class ReviewRequest(_CamelModel):
    paper_id: Optional[int] = Field(None, alias="paperId")
    status: str = ""
    comments: Optional[str] = None


class PaperStatusRequest(_CamelModel):
    status: str = ""


# ── Support ──────────────────────────────────────────────────────────────────

class CreateTicketRequest(_CamelModel):
    title: str = ""
    description: str = ""
    priority: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[int] = Field(None, alias="userId")
    assigned_to: Optional[int] = Field(None, alias="assignedTo")


class AssignTechnicianRequest(_CamelModel):
    ticket_id: Optional[int] = Field(None, alias="ticketId")
    technician_id: Optional[int] = Field(None, alias="technicianId")


class TicketStatusRequest(_CamelModel):
    ticket_id: Optional[int] = Field(None, alias="ticketId")
    status: str = ""
