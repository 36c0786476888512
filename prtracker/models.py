"""Data models for PR records."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PR_PREFIX = "ADMIN"


class RequesterName(str, Enum):
    """Requesters offered by the entry form. ``requestedBy`` is not limited to these."""

    IDHAM = "Idham"
    HALIM = "Halim"
    ZURAIDAH = "Zuraidah"
    ZUREEN = "Zureen"


def is_known_requester(name: str) -> bool:
    """Check whether a requester name is one of the recommended values."""
    return name in {r.value for r in RequesterName}


class PRRecord(BaseModel):
    """A single purchase requisition entry."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default="", description="Opaque identifier assigned by the caller")
    pr_number: str = Field(..., alias="prNumber", description="ADMIN/<year>/<sequence>")
    # Incomplete sheet rows still load so their PR numbers count as taken
    date: str = Field(default="", description="YYYY-MM-DD")
    requested_by: str = Field(default="", alias="requestedBy")
    vendor: str = ""
    description: str = ""
    timestamp: int = Field(default=0, description="Creation instant in epoch ms, used for sorting")

    @field_validator("id", "pr_number", "requested_by", "vendor", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        # Spreadsheet cells come back as numbers or null
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value)) if float(value).is_integer() else str(value)
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        if value in (None, ""):
            return 0
        if isinstance(value, str):
            return int(float(value))
        if isinstance(value, float):
            return int(value)
        return value

    @property
    def normalized_pr_number(self) -> str:
        return self.pr_number.strip().lower()

    def to_wire(self) -> dict[str, Any]:
        """Dict with the camelCase keys used in storage and on the wire."""
        return self.model_dump(by_alias=True)


class Availability(BaseModel):
    """Result of checking whether a PR number is free."""

    available: bool
    record: Optional[PRRecord] = None


class InsertResult(BaseModel):
    """Outcome of a compare-and-insert on the PR number."""

    inserted: bool
    conflict: Optional[PRRecord] = None


class DashboardStats(BaseModel):
    """Summary figures shown above the records table."""

    model_config = ConfigDict(populate_by_name=True)

    total_used: int = Field(0, alias="totalUsed")
    this_month: int = Field(0, alias="thisMonth")
    top_user: str = Field("N/A", alias="topUser")
