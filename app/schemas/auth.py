from pydantic import BaseModel, Field

class RegisterIn(BaseModel):
    email: str
    password: str = Field(min_length=8)
    full_name: str | None = None

class LoginIn(BaseModel):
    email: str
    password: str

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
