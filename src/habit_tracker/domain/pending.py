"""Models for operations recorded while offline."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PendingOperationType(str, Enum):
    """Mutations that can be replayed on reconnect."""

    CREATE_MISSION = "create_mission"
    COMPLETE_MISSION = "complete_mission"
    DELETE_MISSION = "delete_mission"


class PendingOperationRecord(BaseModel):
    """Single recorded mutation waiting to be replayed."""

    model_config = ConfigDict(populate_by_name=True)

    operation_type: str = Field(
        validation_alias=AliasChoices("operationType", "type", "operation_type"),
        serialization_alias="operationType",
    )
    payload: dict[str, object] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("payload", "data"),
    )
