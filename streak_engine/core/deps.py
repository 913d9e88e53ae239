from fastapi import Header


def get_user_id(
    x_user_id: str = Header(
        alias="X-User-Id",
        min_length=1,
        max_length=64,
        description="Opaque id of the user making the request.",
    ),
) -> str:
    """FastAPI dependency: the caller's user id from the X-User-Id header."""
    return x_user_id.strip()
