from pydantic import BaseModel


class NextPageResponse(BaseModel):
    current: str
    direction: str
    page: str
