from typing import Dict, Literal, Optional, Type, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .domain import Collection


class SignupRequest(BaseModel):
    # Missing fields fall through to AuthService.signup, which answers with a 400
    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    # Plain str: a malformed address is just a failed login, not a 422
    email: str
    password: str


class ProfileUpdate(BaseModel):
    """Editable profile fields. Anything else in the body is ignored."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    title: Optional[str] = None
    avatar_url: Optional[str] = Field(None, validation_alias=AliasChoices("avatar_url", "avatar"))


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    title: str = ""
    avatar_url: str = ""
    created_at: str


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class SuccessResponse(BaseModel):
    success: bool = True


class RecordData(BaseModel):
    """
    Base for record payloads.

    Every known field is optional so the same schema serves create and
    partial update, and unknown fields are kept as given.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_payload(self) -> Dict[str, object]:
        return {**self.model_dump(by_alias=True, exclude_unset=True), **(self.model_extra or {})}


class ContactData(RecordData):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None
    status: Optional[Literal["Active", "Inactive"]] = None


class LeadData(RecordData):
    dealName: Optional[str] = None
    companyName: Optional[str] = None
    contactName: Optional[str] = None
    value: Optional[Union[int, float]] = None
    status: Optional[Literal["New", "Qualified", "Proposal Sent", "Negotiation", "Closed Won", "Closed Lost"]] = None
    source: Optional[str] = None


class TaskData(RecordData):
    title: Optional[str] = None
    dueDate: Optional[str] = None
    assignee: Optional[str] = None
    status: Optional[Literal["Not Started", "In Progress", "Completed", "Overdue"]] = None


class EventData(RecordData):
    title: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD
    type: Optional[Literal["meeting", "task", "deadline"]] = None


class DocumentData(RecordData):
    name: Optional[str] = None
    type: Optional[Literal["PDF", "DOCX", "XLSX", "IMG"]] = None
    size: Optional[str] = None
    dateModified: Optional[str] = None
    owner: Optional[str] = None


class EmailData(RecordData):
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    timestamp: Optional[str] = None
    folder: Optional[Literal["inbox", "sent", "trash", "drafts"]] = None
    read: Optional[bool] = None
    avatar: Optional[str] = None


RECORD_SCHEMAS: Dict[Collection, Type[RecordData]] = {
    Collection.CONTACTS: ContactData,
    Collection.LEADS: LeadData,
    Collection.TASKS: TaskData,
    Collection.EVENTS: EventData,
    Collection.DOCUMENTS: DocumentData,
    Collection.EMAILS: EmailData,
}
