"""Modelos para el check-in en la entrada"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, Optional


class CheckInOutcome(str, Enum):
    SUCCESS = "success"
    ALREADY_CHECKED_IN = "already_checked_in"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"


OUTCOME_MESSAGES = {
    CheckInOutcome.SUCCESS: "Check-in successful",
    CheckInOutcome.ALREADY_CHECKED_IN: "Already checked-in",
    CheckInOutcome.NOT_FOUND: "Invalid Ticket",
    CheckInOutcome.INVALID_REQUEST: "day must be 1 or 2",
}


@dataclass
class TicketSummary:
    ticket_id: str
    name: str
    event: str


@dataclass
class CheckInResult:
    outcome: CheckInOutcome
    day: Optional[int] = None
    ticket: Optional[TicketSummary] = None

    @property
    def message(self) -> str:
        return OUTCOME_MESSAGES[self.outcome]


class CheckInResponse(BaseModel):
    success: bool
    outcome: CheckInOutcome
    message: str
    day: int
    ticket_id: str
    name: str
    event: str


class TicketResponse(BaseModel):
    ticket_id: str
    event: str
    name: str
    email: str
    form_data: Dict[str, Any]
    status_day_1: str
    status_day_2: str
    checked_in_day_1_at: Optional[datetime] = None
    checked_in_day_2_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
