"""Who is acting and who is attending."""
from dataclasses import dataclass
from typing import Union
from campus_attendance.models.user import UserRole, ADMIN_LEVEL, INSTRUCTOR_LEVEL, LAB_MANAGER_LEVEL

@dataclass(frozen=True)
class Identity:
    """Authenticated caller as resolved from a bearer token."""
    user_id: int
    role: UserRole
    role_level: int
    username: str = None

    @property
    def is_admin(self) -> bool:
        return self.role_level >= ADMIN_LEVEL

    @property
    def is_lab_manager(self) -> bool:
        return self.role_level >= LAB_MANAGER_LEVEL

    @property
    def is_instructor(self) -> bool:
        return self.role_level >= INSTRUCTOR_LEVEL

@dataclass(frozen=True)
class RegisteredAttendee:
    user_id: int

@dataclass(frozen=True)
class ExternalAttendee:
    external_person_id: int

Attendee = Union[RegisteredAttendee, ExternalAttendee]

@dataclass(frozen=True)
class OriginMetadata:
    """Where a scan came from."""
    ip_address: str = None
    device_info: str = None
