# /quizflow/core/deps.py

"""
Request-level dependencies shared by the routers.

Authentication happens upstream; the identity provider forwards the signed-in
user's id in the `X-User-Id` header. Endpoints that mutate attempts depend on
`get_current_user_id` and then check assignment ownership in the service layer.
"""

from typing import Optional

from fastapi import Header, HTTPException, status


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated.",
        )
    return x_user_id.strip()
