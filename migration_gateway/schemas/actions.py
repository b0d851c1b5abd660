from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActionModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class LoginNameQuery(ActionModel):
    login_name: Optional[str] = Field(default=None, alias="loginName")


class UserSearchQuery(ActionModel):
    login_name_query: Optional[LoginNameQuery] = Field(default=None, alias="loginNameQuery")


class ListUsersRequest(ActionModel):
    queries: Optional[list[UserSearchQuery]] = None

    def first_login_name(self) -> Optional[str]:
        if not self.queries:
            return None
        query = self.queries[0].login_name_query
        if query is None or not query.login_name:
            return None
        return query.login_name


class PasswordCheck(ActionModel):
    password: Optional[str] = None


class SessionChecks(ActionModel):
    password: Optional[PasswordCheck] = None


class SetSessionRequest(ActionModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    session_token: Optional[str] = Field(default=None, alias="sessionToken")
    checks: Optional[SessionChecks] = None

    def supplied_password(self) -> Optional[str]:
        if self.checks is None or self.checks.password is None:
            return None
        return self.checks.password.password or None


class SetPasswordRequest(ActionModel):
    user_id: Optional[str] = Field(default=None, alias="userId")


class ActionEnvelope(ActionModel):
    """Body posted by the identity platform for every intercepted call.

    ``response`` is kept as the raw JSON object so it can be returned untouched.
    """

    user_id: Optional[str] = Field(default=None, alias="userID")
    response: Optional[dict[str, Any]] = None

    def original_response(self) -> dict[str, Any]:
        return self.response or {}

    @field_validator("request", mode="before", check_fields=False)
    @classmethod
    def _null_request_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ListUsersAction(ActionEnvelope):
    request: ListUsersRequest = Field(default_factory=ListUsersRequest)


class SetSessionAction(ActionEnvelope):
    request: SetSessionRequest = Field(default_factory=SetSessionRequest)


class SetPasswordAction(ActionEnvelope):
    request: SetPasswordRequest = Field(default_factory=SetPasswordRequest)
