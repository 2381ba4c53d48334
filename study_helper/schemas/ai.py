from typing import Optional

from pydantic import BaseModel, Field


class CompletionRequest(BaseModel):
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    user_text: Optional[str] = Field(default=None, alias="userText")
