from pydantic import BaseModel

class UserOut(BaseModel):
    id: int
    email: str
    full_name: str | None
    role: str
    trial_used: bool

    class Config:
        from_attributes = True
