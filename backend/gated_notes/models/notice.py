from pydantic import BaseModel


class Notice(BaseModel):
    message: str
    level: str
    created_at: str
