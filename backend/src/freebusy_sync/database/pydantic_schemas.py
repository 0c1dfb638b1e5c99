from datetime import datetime

from pydantic import BaseModel, ConfigDict

from freebusy_sync.core.enums import (
    BusyStatus,
    InstanceType,
    MeetingStatus,
    ResponseStatus,
)


class UserSyncStateSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email: str
    last_modified: datetime | None = None
    last_synced_at: datetime | None = None
    last_error: str | None = None
    error_count: int = 0


class AppointmentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: datetime
    end: datetime
    subject: str = ""
    location: str = ""
    organizer: str = ""
    busy_status: BusyStatus = BusyStatus.BUSY
    response_status: ResponseStatus = ResponseStatus.NONE
    instance_type: InstanceType = InstanceType.SINGLE
    meeting_status: MeetingStatus = MeetingStatus.CONFIRMED
    is_private: bool = False
    all_day_event: bool = False
    sync_owned: bool = False


class AppointmentChangesSchema(BaseModel):
    """Summary of one user's appointment sync plan."""

    email: str
    deleted: list[AppointmentSchema] = []
    updated: list[AppointmentSchema] = []
    created: list[AppointmentSchema] = []
