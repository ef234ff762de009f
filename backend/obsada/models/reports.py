"""
backend/obsada/models/reports.py

Purpose:
    Report artifact slots on a match and the role/action permission matrix
    that gates reading and writing them.

    Each ReportType owns exactly one key field on the match document. The
    permission matrix is checked for totality over Role x ActionType when
    this module is imported, so a new role or action cannot ship without an
    explicit entry.
"""

from enum import Enum

from obsada.models.user import Role


class ReportType(str, Enum):
    observer = "observer"
    mentor = "mentor"
    tv = "tv"


class ActionType(str, Enum):
    view = "view"
    upload = "upload"
    remove = "remove"


REPORT_FIELD_NAMES: dict[ReportType, str] = {
    ReportType.observer: "observer_report_key",
    ReportType.mentor: "mentor_report_key",
    ReportType.tv: "tv_report_key",
}

_ALL_REPORTS = frozenset(ReportType)

GRADE_FILE_PERMISSIONS: dict[Role, dict[ActionType, frozenset[ReportType]]] = {
    Role.owner: {
        ActionType.view: _ALL_REPORTS,
        ActionType.upload: _ALL_REPORTS,
        ActionType.remove: _ALL_REPORTS,
    },
    Role.admin: {
        ActionType.view: _ALL_REPORTS,
        ActionType.upload: _ALL_REPORTS,
        ActionType.remove: _ALL_REPORTS,
    },
    Role.observer: {
        ActionType.view: _ALL_REPORTS,
        ActionType.upload: frozenset({ReportType.observer}),
        ActionType.remove: frozenset({ReportType.observer}),
    },
    Role.referee: {
        ActionType.view: frozenset({ReportType.observer, ReportType.tv}),
        ActionType.upload: frozenset(),
        ActionType.remove: frozenset(),
    },
}


def validate_permission_matrix(
    matrix: dict[Role, dict[ActionType, frozenset[ReportType]]],
) -> None:
    """Raise ValueError unless every Role x ActionType pair has an entry."""
    if set(REPORT_FIELD_NAMES) != set(ReportType):
        raise ValueError("Every report type needs exactly one key field.")
    if len(set(REPORT_FIELD_NAMES.values())) != len(REPORT_FIELD_NAMES):
        raise ValueError("Report key fields must be distinct.")
    for role in Role:
        actions = matrix.get(role)
        if actions is None:
            raise ValueError(f"Missing report permissions for role {role.value}.")
        for action in ActionType:
            if action not in actions:
                raise ValueError(
                    f"Missing report permissions for role {role.value}, action {action.value}."
                )


validate_permission_matrix(GRADE_FILE_PERMISSIONS)
