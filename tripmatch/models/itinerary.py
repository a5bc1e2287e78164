"""Itinerary document model"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.dates import calculate_age, to_day_timestamp


class ItineraryUserInfo(BaseModel):
    """Owner profile snapshot embedded in every itinerary"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    uid: str = Field(..., min_length=1)
    username: str = ""
    gender: str = ""
    dob: Optional[str] = Field(None, description="Date of birth, YYYY-MM-DD")
    email: Optional[str] = None
    status: str = ""
    sexual_orientation: str = Field("", alias="sexualOrientation")
    blocked: List[str] = Field(default_factory=list)


class Itinerary(BaseModel):
    """
    Itinerary document as stored in the `itineraries` collection.

    Top-level `gender`, `status`, `sexual_orientation` and the age range are the
    owner's preferences for candidates; the owner's own attributes live in
    `user_info`.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    destination: str = ""
    start_day: Optional[int] = Field(None, alias="startDay", description="Start, epoch milliseconds")
    end_day: Optional[int] = Field(None, alias="endDay", description="End, epoch milliseconds")
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    gender: Optional[str] = None
    status: Optional[str] = None
    sexual_orientation: Optional[str] = Field(None, alias="sexualOrientation")
    lower_range: Optional[int] = Field(None, alias="lowerRange")
    upper_range: Optional[int] = Field(None, alias="upperRange")
    age: Optional[int] = None
    likes: List[str] = Field(default_factory=list)
    user_info: Optional[ItineraryUserInfo] = Field(None, alias="userInfo")
    user_id: Optional[str] = Field(None, alias="userId")
    description: Optional[str] = None
    activities: List[str] = Field(default_factory=list)

    @field_validator("likes", mode="before")
    @classmethod
    def drop_empty_likes(cls, v):
        """Null likes arrays are stored by older clients"""
        if v is None:
            return []
        return [uid for uid in v if isinstance(uid, str) and uid]

    @field_validator("start_day", "end_day", mode="before")
    @classmethod
    def integer_day(cls, v):
        """Day timestamps must be whole numbers"""
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float, str)):
            raise ValueError("Day timestamp must be an integer")
        number = float(v)
        if not number.is_integer():
            raise ValueError("Day timestamp must be an integer")
        return int(number)

    @model_validator(mode="before")
    @classmethod
    def reject_serialized_payloads(cls, data: Any):
        """`metadata`/`response` must be objects, never pre-serialized strings"""
        if isinstance(data, dict):
            for key in ("metadata", "response"):
                if isinstance(data.get(key), str):
                    raise ValueError(f"{key} must not be a string")
        return data

    @model_validator(mode="after")
    def fill_days_and_check_ranges(self):
        if self.start_day is None and self.start_date:
            self.start_day = to_day_timestamp(self.start_date)
        if self.end_day is None and self.end_date:
            self.end_day = to_day_timestamp(self.end_date)
        if self.start_day is not None and self.end_day is not None and self.start_day > self.end_day:
            raise ValueError("startDay must not be after endDay")
        if self.lower_range is not None and self.upper_range is not None and self.lower_range > self.upper_range:
            raise ValueError("lowerRange must not exceed upperRange")
        return self

    @property
    def owner_uid(self) -> Optional[str]:
        """Owner's user ID (userInfo.uid, falling back to userId)"""
        if self.user_info and self.user_info.uid:
            return self.user_info.uid
        return self.user_id

    def owner_age(self) -> Optional[int]:
        """Stored age, or age derived from the owner's DOB"""
        if self.age is not None:
            return self.age
        if self.user_info is not None:
            return calculate_age(self.user_info.dob)
        return None

    def to_document(self) -> Dict[str, Any]:
        """Serialize with store field names"""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
