from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Outcome(str, Enum):
    YES = "YES"
    NO = "NO"


class Category(str, Enum):
    SPORTS = "Sports"
    ESPORTS = "Esports"


class MarketStatus(str, Enum):
    ACTIVE = "ACTIVE"
    LOCKED = "LOCKED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class BetStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"


class TransactionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    BET_PLACED = "BET_PLACED"
    BET_WON = "BET_WON"


CREDIT_TYPES = frozenset({TransactionType.DEPOSIT, TransactionType.BET_WON})


def _to_utc(value: datetime) -> datetime:
    """Naive timestamps from the service are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_decimal(value):
    # float -> str -> Decimal keeps 2.4 as 2.4 rather than its binary expansion
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class Snapshot(BaseModel):
    """Read-only view of a service entity; never mutated client-side."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class User(Snapshot):
    id: int
    email: str
    balance: int = Field(ge=0)  # minor units (paise)
    is_admin: bool = Field(default=False, validation_alias=AliasChoices("isAdmin", "is_admin"))


class Market(Snapshot):
    id: int
    title: str
    description: str = ""
    category: Category = Field(
        default=Category.SPORTS, validation_alias=AliasChoices("catagory", "category")
    )
    end_time: datetime = Field(validation_alias=AliasChoices("end_time", "endTime"))
    is_open: bool = Field(default=True, validation_alias=AliasChoices("isOpen", "is_open"))
    is_locked: bool = Field(default=False, validation_alias=AliasChoices("isLocked", "is_locked"))
    outcome: Optional[Outcome] = None
    # None means the service has not computed live odds yet
    odds_yes: Optional[Decimal] = Field(
        default=None, gt=0, validation_alias=AliasChoices("Oddsyes", "oddsYes", "odds_yes")
    )
    odds_no: Optional[Decimal] = Field(
        default=None, gt=0, validation_alias=AliasChoices("Oddsno", "oddsNo", "odds_no")
    )
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    creator_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("creatorId", "creator_id")
    )

    @field_validator("end_time", "created_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]):
        return _to_utc(v) if v is not None else v

    @field_validator("odds_yes", "odds_no", mode="before")
    @classmethod
    def _exact_odds(cls, v):
        return _to_decimal(v)


class Bet(Snapshot):
    id: int
    user_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("userId", "user_id"))
    market_id: int = Field(validation_alias=AliasChoices("marketId", "market_id"))
    outcome_chosen: Outcome
    amount: int = Field(ge=1)
    odds: Decimal = Field(gt=0)
    status: BetStatus = BetStatus.PENDING
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )

    @field_validator("odds", mode="before")
    @classmethod
    def _exact_odds(cls, v):
        return _to_decimal(v)

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]):
        return _to_utc(v) if v is not None else v


class Transaction(Snapshot):
    id: int
    type: TransactionType
    amount: int = Field(ge=0)
    user_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("userId", "user_id"))
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )

    @field_validator("amount", mode="before")
    @classmethod
    def _unsigned(cls, v):
        # Direction comes from the type; some ledgers also sign the amount.
        return abs(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]):
        return _to_utc(v) if v is not None else v

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type in CREDIT_TYPES else -self.amount


class LeaderboardEntry(Snapshot):
    user_id: int = Field(validation_alias=AliasChoices("userId", "user_id"))
    email: str
    total_winnings: int = Field(
        default=0, validation_alias=AliasChoices("totalWinnings", "total_winnings")
    )

    @property
    def handle(self) -> str:
        return self.email.split("@")[0]


class BetTicket(Snapshot):
    """The wager as echoed back by the service, odds captured at placement."""

    amount: int
    outcome_chosen: Outcome
    odds: Decimal = Field(gt=0)

    @field_validator("odds", mode="before")
    @classmethod
    def _exact_odds(cls, v):
        return _to_decimal(v)


class MarketOdds(Snapshot):
    odds_yes: Decimal = Field(gt=0, validation_alias=AliasChoices("oddsYes", "Oddsyes", "odds_yes"))
    odds_no: Decimal = Field(gt=0, validation_alias=AliasChoices("oddsNo", "Oddsno", "odds_no"))

    @field_validator("odds_yes", "odds_no", mode="before")
    @classmethod
    def _exact_odds(cls, v):
        return _to_decimal(v)


class PlaceBetResult(Snapshot):
    message: str = ""
    bet: BetTicket
    updated_odds: Optional[MarketOdds] = Field(
        default=None, validation_alias=AliasChoices("updatedMarketOdds", "updated_odds")
    )


class MarketDraft(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    end_time: datetime
    category: Category = Category.SPORTS

    @field_validator("end_time")
    @classmethod
    def _utc(cls, v: datetime):
        return _to_utc(v)

    def to_payload(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "end_time": self.end_time.isoformat(),
            "catagory": self.category.value,
        }


class MarketUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    end_time: Optional[datetime] = None
    category: Optional[Category] = None

    def to_payload(self) -> dict:
        payload: dict = {}
        if self.title is not None:
            payload["title"] = self.title
        if self.description is not None:
            payload["description"] = self.description
        if self.end_time is not None:
            payload["end_time"] = _to_utc(self.end_time).isoformat()
        if self.category is not None:
            payload["catagory"] = self.category.value
        return payload


class FieldError(BaseModel):
    path: List[str] = Field(default_factory=list)
    message: str

    @field_validator("path", mode="before")
    @classmethod
    def _stringify(cls, v):
        if isinstance(v, (list, tuple)):
            return [str(p) for p in v]
        return [str(v)]
