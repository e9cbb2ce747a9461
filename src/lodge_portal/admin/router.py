"""
Privileged delete-user endpoint.

The caller's bearer token is verified locally; whether the caller may delete
anyone is decided by their member profile, read with the service role key.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request

from lodge_portal.admin.schemas import DeleteUserRequest, DeleteUserResponse, ErrorResponse
from lodge_portal.admin.service import UserDeletionService
from lodge_portal.auth.jwt import JWTHandler
from lodge_portal.shared.exceptions import AuthError
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/functions/v1", tags=["admin"])


def get_deletion_service(request: Request) -> UserDeletionService:
    """Dependency for the user deletion service built at startup."""
    return request.app.state.deletion_service


def get_jwt_handler(request: Request) -> JWTHandler:
    return request.app.state.jwt_handler


def get_caller_id(
    jwt_handler: Annotated[JWTHandler, Depends(get_jwt_handler)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve the calling user from the ``Authorization`` header.

    Raises:
        AuthError: 401 if the header is missing or the token does not verify.
    """
    if not authorization:
        raise AuthError("Missing authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Unauthorized")
    try:
        return jwt_handler.verify(token.strip()).user_id
    except AuthError as e:
        raise AuthError("Unauthorized", details={"cause": e.message}) from e


@router.post(
    "/delete-user",
    response_model=DeleteUserResponse,
    responses={
        400: {"model": ErrorResponse, "description": "user_id missing"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Not an active admin, or self-delete"},
        404: {"model": ErrorResponse, "description": "User not found"},
        500: {"model": ErrorResponse, "description": "Deletion failed"},
    },
)
async def delete_user(
    body: DeleteUserRequest,
    caller_id: Annotated[str, Depends(get_caller_id)],
    service: Annotated[UserDeletionService, Depends(get_deletion_service)],
) -> DeleteUserResponse:
    """Delete a user's identity and member profile.

    Args:
        body: Request body carrying the target ``user_id``.
        caller_id: Verified id of the calling admin.
        service: User deletion service.

    Returns:
        Confirmation with the deleted user's id.
    """
    logger.info(
        "Delete user requested",
        extra={"caller_id": caller_id, "target_user_id": body.user_id},
    )
    return await service.delete_user(caller_id, body.user_id)
