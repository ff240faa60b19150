from enum import Enum
from pydantic import BaseModel
from typing import Optional


class Language(str, Enum):
    PT_BR = "pt-BR"
    EN_US = "en-US"
    ES_ES = "es-ES"


class UserPreferences(BaseModel):
    display_name: str = ""
    language: Language = Language.PT_BR
    timezone: str = "America/Sao_Paulo"
    avatar_url: str = ""


class PreferencesUpdate(BaseModel):
    display_name: Optional[str] = None
    language: Optional[Language] = None
    timezone: Optional[str] = None
    avatar_url: Optional[str] = None
