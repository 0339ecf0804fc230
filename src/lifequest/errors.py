"""Exception hierarchy and business rejection codes."""

from __future__ import annotations

from enum import Enum


class LifeQuestError(Exception):
    """Base class for all LifeQuest errors."""


class DatastoreError(LifeQuestError):
    """Raised when the datastore cannot complete an operation."""


class DuplicateRecordError(DatastoreError):
    """Insert rejected by a uniqueness constraint."""

    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"Duplicate record in {table}: {key}")
        self.table = table
        self.key = key


class UnknownTableError(DatastoreError):
    """Table name is not part of the datastore schema."""


class UserNotFoundError(LifeQuestError):
    """Reward operation targeted a user that does not exist."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class InsufficientCoinsError(LifeQuestError):
    """Coin balance is lower than the amount being spent."""

    def __init__(self, user_id: str, balance: int, required: int) -> None:
        super().__init__(f"User {user_id} has {balance} coins, {required} required")
        self.user_id = user_id
        self.balance = balance
        self.required = required


class GenerationFailedError(LifeQuestError):
    """The live content provider misbehaved (bad output, timeout, outage).

    Never answered from templates; the routing layer maps it to 502.
    """


class GenerationCredentialsError(GenerationFailedError):
    """The provider rejected our credentials or the account is out of quota."""


class MissionErrorCode(str, Enum):
    """Structured business rejections returned by the mission service."""

    PROFILE_NOT_FOUND = "profile_not_found"
    PROFILE_INCOMPLETE = "profile_incomplete"
    MISSION_NOT_FOUND = "mission_not_found"
    MISSION_CONFLICT = "mission_conflict"
    MISSION_ALREADY_STARTED = "mission_already_started"
    MISSION_NOT_STARTED = "mission_not_started"
    STEP_NOT_FOUND = "step_not_found"


# HTTP status for each rejection, used by the routing layer.
ERROR_STATUS: dict[MissionErrorCode, int] = {
    MissionErrorCode.PROFILE_NOT_FOUND: 404,
    MissionErrorCode.PROFILE_INCOMPLETE: 400,
    MissionErrorCode.MISSION_NOT_FOUND: 404,
    MissionErrorCode.MISSION_CONFLICT: 409,
    MissionErrorCode.MISSION_ALREADY_STARTED: 409,
    MissionErrorCode.MISSION_NOT_STARTED: 400,
    MissionErrorCode.STEP_NOT_FOUND: 404,
}
