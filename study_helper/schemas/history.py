from typing import Optional

from pydantic import BaseModel, Field


class HistoryCreate(BaseModel):
    type: Optional[str] = None
    input_text: Optional[str] = Field(default=None, alias="inputText")
    result: Optional[str] = None
    url: Optional[str] = None
