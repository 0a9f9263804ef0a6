from typing import Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# GPS providers send camelCase; both spellings are accepted on input.


class TrackPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    speed: float = Field(ge=0)  # km/h
    timestamp: str  # ISO 8601
    ignition_on: bool = Field(validation_alias=AliasChoices("ignition_on", "ignitionOn"))


class Track(BaseModel):
    """Points for one vehicle over a declared period, in chronological order."""

    model_config = ConfigDict(frozen=True)

    vehicle_id: str = Field(validation_alias=AliasChoices("vehicle_id", "vehicleId"))
    start_time: str = Field(validation_alias=AliasChoices("start_time", "startTime"))
    end_time: str = Field(validation_alias=AliasChoices("end_time", "endTime"))
    points: Tuple[TrackPoint, ...] = ()


class Vehicle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    license_plate: str = Field(validation_alias=AliasChoices("license_plate", "licensePlate"))
    vehicle_type: str = Field(validation_alias=AliasChoices("vehicle_type", "vehicleType"))
    group_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("group_id", "groupId")
    )
