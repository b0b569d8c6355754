"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - WORKER: injured employee, submits daily check-ins
    - EMPLOYER: company account that workers belong to
    - SITE_SUPERVISOR: reports incidents for an employer's site
    - TEAM_LEADER: manages a team of workers
    - CLINICIAN: treats cases, runs appointments and rehab plans
    - CASE_MANAGER: creates cases and coordinates assignment
    - GP_INSURER: read-only oversight of all cases
    - ADMIN: full system access
    """

    ADMIN = "admin"
    WORKER = "worker"
    EMPLOYER = "employer"
    SITE_SUPERVISOR = "site_supervisor"
    CLINICIAN = "clinician"
    CASE_MANAGER = "case_manager"
    GP_INSURER = "gp_insurer"
    TEAM_LEADER = "team_leader"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class AuthAction(str, Enum):
    """Authentication events recorded in auth_logs."""

    LOGIN = "login"
    LOGOUT = "logout"
    FAILED_LOGIN = "failed_login"
    PASSWORD_CHANGE = "password_change"
