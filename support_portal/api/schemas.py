"""
Request/response models and request-body validation.
"""
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from support_portal.chat.context import AnyUserDetails, ConversationTurn, LocatedUserDetails, UserDetails
from support_portal.llm.errors import RequestValidationError
from support_portal.llm.interpreter import SearchResultItem


class ChatRequest(BaseModel):
    """Input for /api/chat."""
    message: str = Field(..., min_length=1, examples=["I need a new laptop"])
    history: List[ConversationTurn] = Field(default_factory=list)
    userDetails: UserDetails


class SearchRequest(BaseModel):
    """Input for /api/smart-search."""
    query: str = Field(..., min_length=1, examples=["laptop issue"])
    userDetails: AnyUserDetails


class ChatReply(BaseModel):
    response: str
    aiDisabled: Optional[bool] = None

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SearchReply(BaseModel):
    links: List[SearchResultItem] = Field(default_factory=list)
    error: Optional[str] = None
    aiDisabled: Optional[bool] = None

    def to_body(self) -> Dict[str, Any]:
        body = self.model_dump()
        if self.aiDisabled is None:
            body.pop("aiDisabled")
        return body


class ErrorReply(BaseModel):
    error: str


_HISTORY = TypeAdapter(List[ConversationTurn])


def _require_object(body: Any) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise RequestValidationError("Request body must be a JSON object")
    return body


def _require_text(body: Dict[str, Any], field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str) or not value.strip():
        raise RequestValidationError(f"Missing or invalid field: {field}", [field])
    return value


def _user_details_model(raw: Any, allow_location: bool) -> Type[BaseModel]:
    """Pick the shape the caller sent; the two are never merged."""
    if (
        allow_location
        and isinstance(raw, dict)
        and "location" in raw
        and "workLocation" not in raw
        and "officeLocation" not in raw
    ):
        return LocatedUserDetails
    return UserDetails


def parse_user_details(raw: Any, allow_location: bool = False) -> Union[UserDetails, LocatedUserDetails]:
    """Validate userDetails, naming every missing or invalid field."""
    model = _user_details_model(raw, allow_location)
    if not isinstance(raw, dict):
        fields = list(model.model_fields)
        raise RequestValidationError(f"Missing or invalid user details: {', '.join(fields)}", fields)
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        fields = []
        for error in e.errors():
            name = str(error["loc"][0]) if error["loc"] else "userDetails"
            if name not in fields:
                fields.append(name)
        raise RequestValidationError(f"Missing or invalid user details: {', '.join(fields)}", fields) from e


def _collect(parse, problems: List[str]) -> Any:
    """Run one field check, recording its field names instead of raising."""
    try:
        return parse()
    except RequestValidationError as e:
        problems.extend(field for field in e.fields if field not in problems)
        return None


def _raise_for(problems: List[str]) -> None:
    if problems:
        raise RequestValidationError(f"Missing or invalid fields: {', '.join(problems)}", problems)


def _parse_history(raw: Any) -> List[ConversationTurn]:
    try:
        return _HISTORY.validate_python(raw or [])
    except ValidationError as e:
        raise RequestValidationError("Missing or invalid field: history", ["history"]) from e


def parse_chat_request(body: Any) -> ChatRequest:
    body = _require_object(body)
    problems: List[str] = []
    message = _collect(lambda: _require_text(body, "message"), problems)
    turns = _collect(lambda: _parse_history(body.get("history")), problems)
    user_details = _collect(lambda: parse_user_details(body.get("userDetails")), problems)
    _raise_for(problems)
    return ChatRequest(message=message, history=turns, userDetails=user_details)


def parse_search_request(body: Any) -> SearchRequest:
    body = _require_object(body)
    problems: List[str] = []
    query = _collect(lambda: _require_text(body, "query"), problems)
    user_details = _collect(lambda: parse_user_details(body.get("userDetails"), allow_location=True), problems)
    _raise_for(problems)
    return SearchRequest(query=query, userDetails=user_details)
