# /quizflow/services/redirect_service.py

"""
Lookup of the content shown after an attempt or journey finalizes. A level
redirect is keyed by (assignment, level, session); `session_id=None` is the
journey-wide redirect. Rendering the embed snippet is the client's concern.
"""

import logging
from typing import Dict, Optional

from ..core.exceptions import InputValidationError, NotFoundError
from .database_service import DatabaseService

logger = logging.getLogger(__name__)


def get_level_redirect(db: DatabaseService, assignment_id: str, level: Optional[str],
                       session_id: Optional[str] = None) -> Optional[Dict]:
    if not level:
        return None
    redirect = db.get_level_redirect(assignment_id, level, session_id)
    if not redirect:
        return None
    if redirect.redirect_type == "embed":
        return {"type": "embed", "url": None, "embedCode": redirect.embed_code}
    return {"type": "link", "url": redirect.redirect_url, "embedCode": None}


def get_embed_content(db: DatabaseService, attempt_id: str) -> Dict:
    """Returns the embed snippet for a finalized attempt's level."""
    attempt = db.get_attempt(attempt_id)
    if not attempt:
        raise NotFoundError(f"Attempt {attempt_id} not found.")
    if not attempt.is_final or not attempt.level:
        raise InputValidationError("Attempt is not graded yet.")

    redirect = get_level_redirect(db, attempt.assignment_id, attempt.level, attempt.session_id)
    if not redirect or redirect["type"] != "embed" or not redirect["embedCode"]:
        logger.info("[Embed] No embed content for attempt %s at level %s", attempt_id, attempt.level)
        raise NotFoundError("No embed content configured for this level.")

    return {"attemptId": attempt.id, "level": attempt.level, "embedCode": redirect["embedCode"]}
