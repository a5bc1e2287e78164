"""Search criteria derived from the searching user's own itinerary"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from .itinerary import Itinerary

# Sentinel the apps store when the owner has no preference for a field
NO_PREFERENCE = "No Preference"


@dataclass(frozen=True)
class Preference:
    """
    Preference for one candidate attribute: Any, or Exactly(value).

    Built from the stored string, where None, "" and "No Preference" all mean Any.
    """
    value: Optional[str] = None

    @classmethod
    def any(cls) -> "Preference":
        return cls(None)

    @classmethod
    def exactly(cls, value: str) -> "Preference":
        if not value:
            raise ValueError("Exactly() needs a value")
        return cls(value)

    @classmethod
    def from_raw(cls, raw: Optional[str]) -> "Preference":
        if raw is None or not str(raw).strip() or raw == NO_PREFERENCE:
            return cls.any()
        return cls.exactly(raw)

    @property
    def is_any(self) -> bool:
        return self.value is None

    def accepts(self, candidate_value: Optional[str]) -> bool:
        return self.is_any or candidate_value == self.value


# Preference field on the searcher's itinerary -> candidate owner attribute path
PREFERENCE_FIELDS = {
    "gender": "userInfo.gender",
    "status": "userInfo.status",
    "sexual_orientation": "userInfo.sexualOrientation",
}


@dataclass(frozen=True)
class SearchCriteria:
    """Everything a candidate query needs, detached from the itinerary model"""
    destination: str
    min_end_day: int
    current_user_id: str
    max_start_day: Optional[int] = None
    gender: Preference = Preference()
    status: Preference = Preference()
    sexual_orientation: Preference = Preference()
    lower_range: Optional[int] = None
    upper_range: Optional[int] = None
    excluded_ids: FrozenSet[str] = field(default_factory=frozenset)
    blocked_user_ids: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_itinerary(
        cls,
        itinerary: Itinerary,
        user_id: str,
        excluded_ids: FrozenSet[str] = frozenset(),
    ) -> "SearchCriteria":
        blocked = itinerary.user_info.blocked if itinerary.user_info else []
        return cls(
            destination=itinerary.destination,
            min_end_day=itinerary.start_day,
            max_start_day=itinerary.end_day,
            current_user_id=user_id,
            gender=Preference.from_raw(itinerary.gender),
            status=Preference.from_raw(itinerary.status),
            sexual_orientation=Preference.from_raw(itinerary.sexual_orientation),
            lower_range=itinerary.lower_range,
            upper_range=itinerary.upper_range,
            excluded_ids=frozenset(excluded_ids),
            blocked_user_ids=frozenset(blocked),
        )

    def preferences(self) -> Dict[str, Preference]:
        return {name: getattr(self, name) for name in PREFERENCE_FIELDS}

    def accepts_age(self, age: Optional[int]) -> bool:
        """Age filter; candidates without an age pass only when no range is set"""
        if self.lower_range is None and self.upper_range is None:
            return True
        if age is None:
            return False
        if self.lower_range is not None and age < self.lower_range:
            return False
        if self.upper_range is not None and age > self.upper_range:
            return False
        return True

    def to_rpc_params(self, page_size: int) -> Dict[str, Any]:
        """Payload for the `searchItineraries` callable"""
        return {
            "destination": self.destination,
            "gender": self.gender.value or NO_PREFERENCE,
            "status": self.status.value or NO_PREFERENCE,
            "sexualOrientation": self.sexual_orientation.value or NO_PREFERENCE,
            "minStartDay": self.min_end_day,
            "maxEndDay": self.max_start_day,
            "pageSize": page_size,
            "excludedIds": sorted(self.excluded_ids),
            "blockedUserIds": sorted(self.blocked_user_ids),
            "currentUserId": self.current_user_id,
            "lowerRange": self.lower_range,
            "upperRange": self.upper_range,
        }

    @classmethod
    def from_rpc_params(cls, params: Dict[str, Any]) -> "SearchCriteria":
        return cls(
            destination=params.get("destination") or "",
            min_end_day=params.get("minStartDay") or 0,
            max_start_day=params.get("maxEndDay"),
            current_user_id=params.get("currentUserId") or "",
            gender=Preference.from_raw(params.get("gender")),
            status=Preference.from_raw(params.get("status")),
            sexual_orientation=Preference.from_raw(params.get("sexualOrientation")),
            lower_range=params.get("lowerRange"),
            upper_range=params.get("upperRange"),
            excluded_ids=frozenset(params.get("excludedIds") or []),
            blocked_user_ids=frozenset(params.get("blockedUserIds") or []),
        )
