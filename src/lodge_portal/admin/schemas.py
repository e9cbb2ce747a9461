"""
Request and response bodies for the privileged endpoints.
"""

from pydantic import BaseModel, Field


class DeleteUserRequest(BaseModel):
    user_id: str | None = Field(None, description="Identity to delete")


class DeleteUserResponse(BaseModel):
    message: str = "User and profile deleted successfully"
    user_id: str


class ErrorResponse(BaseModel):
    error: str
    code: str
