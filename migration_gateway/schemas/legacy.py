from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LegacyUserRecord(BaseModel):
    legacy_id: str
    login_name: str
    username: Optional[str] = None
    given_name: str = ""
    family_name: str = ""
    display_name: str = ""
    preferred_language: str = "en"
    email: str
    password: str = Field(repr=False)

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @property
    def effective_username(self) -> str:
        return self.username or self.login_name
