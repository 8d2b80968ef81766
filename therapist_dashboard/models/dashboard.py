# dashboard models: the aggregated view handed to the presentation layer
# stored documents are snake_case, api payloads use camelCase aliases

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, computed_field


class PendingRequest(BaseModel):
    """appointment request waiting for the therapist's approval"""
    id: str
    patient_name: str = Field("", alias="patientName")
    date: str = ""
    time: str = ""
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = {"populate_by_name": True}


class UpcomingAppointment(BaseModel):
    """confirmed session on or after today"""
    id: str
    patient_name: str = Field("", alias="patientName")
    date: str = ""
    time: str = ""

    model_config = {"populate_by_name": True}


class RecentMessage(BaseModel):
    """message addressed to the therapist"""
    id: str
    sender_name: str = Field("", alias="senderName")
    sender_id: Optional[str] = Field(None, alias="senderId")
    text: str = ""
    timestamp: datetime
    read: bool = False

    model_config = {"populate_by_name": True}


class DashboardSummary(BaseModel):
    """the four headline cards"""
    pending_requests: int = Field(0, alias="pendingRequests")
    total_patients: int = Field(0, alias="totalPatients")
    upcoming_sessions: int = Field(0, alias="upcomingSessions")
    unread_messages: int = Field(0, alias="unreadMessages")

    model_config = {"populate_by_name": True}


class DashboardView(BaseModel):
    """read-only snapshot, recomputed in full on every invocation"""
    pending_requests: list[PendingRequest] = Field(default_factory=list, alias="pendingRequests")
    upcoming_appointments: list[UpcomingAppointment] = Field(
        default_factory=list, alias="upcomingAppointments"
    )
    patient_count: int = Field(0, alias="patientCount")
    recent_messages: list[RecentMessage] = Field(default_factory=list, alias="recentMessages")

    model_config = {"populate_by_name": True, "frozen": True}

    @computed_field
    @property
    def summary(self) -> DashboardSummary:
        # unread is counted over the recent-message window only
        return DashboardSummary(
            pendingRequests=len(self.pending_requests),
            totalPatients=self.patient_count,
            upcomingSessions=len(self.upcoming_appointments),
            unreadMessages=sum(1 for m in self.recent_messages if not m.read),
        )


class DashboardState(BaseModel):
    """view plus the flags the presentation layer renders from"""
    view: DashboardView = Field(default_factory=DashboardView)
    ready: bool = False
    loading: bool = False
    error: bool = False

    model_config = {"frozen": True}
