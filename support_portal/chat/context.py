"""
Conversation state for one support session.
"""
from typing import Annotated, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, StringConstraints


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class UserDetails(BaseModel):
    """Session facts about the signed-in employee."""
    model_config = ConfigDict(frozen=True)

    firstName: NonEmptyStr
    lastName: NonEmptyStr
    jobTitle: NonEmptyStr
    component: NonEmptyStr
    workLocation: NonEmptyStr
    officeLocation: NonEmptyStr

    def facts(self) -> List[Tuple[str, str]]:
        return [
            ("First Name", self.firstName),
            ("Last Name", self.lastName),
            ("Job Title", self.jobTitle),
            ("Component", self.component),
            ("Work Location", self.workLocation),
            ("Office Location", self.officeLocation),
        ]


class LocatedUserDetails(BaseModel):
    """Alternate shape sent by callers that only know a single location."""
    model_config = ConfigDict(frozen=True)

    firstName: NonEmptyStr
    lastName: NonEmptyStr
    jobTitle: NonEmptyStr
    component: NonEmptyStr
    location: NonEmptyStr

    def facts(self) -> List[Tuple[str, str]]:
        return [
            ("First Name", self.firstName),
            ("Last Name", self.lastName),
            ("Job Title", self.jobTitle),
            ("Component", self.component),
            ("Location", self.location),
        ]


AnyUserDetails = Union[UserDetails, LocatedUserDetails]


class TurnPart(BaseModel):
    text: str


class ConversationTurn(BaseModel):
    """One message in the session history."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    parts: List[TurnPart]

    @classmethod
    def user(cls, text: str) -> "ConversationTurn":
        return cls(role="user", parts=[TurnPart(text=text)])

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts)


class ConversationContext:
    """Fixed user facts plus the ordered, append-only turn history."""

    def __init__(self, user_details: AnyUserDetails, history: Union[List[ConversationTurn], Tuple[ConversationTurn, ...]] = ()):
        self.user_details = user_details
        self.history: Tuple[ConversationTurn, ...] = tuple(history)

    def known_facts(self) -> List[Tuple[str, str]]:
        """Facts the assistant already has and must never ask for."""
        return self.user_details.facts()

    def append(self, turn: ConversationTurn) -> "ConversationContext":
        """New context with one more turn; this one is left untouched."""
        return ConversationContext(self.user_details, self.history + (turn,))

    def user_block(self) -> str:
        return "\n".join(f"- {label}: {value}" for label, value in self.known_facts())
