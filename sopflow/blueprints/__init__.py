"""
SOPFlow
Blueprint registry and shared view helpers.
"""

import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from sopflow.core.exceptions import PlatformError
from sopflow.models import db
from sopflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit:  max items (default 200, capped at max_limit)
        offset: starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    limit = max(limit, 0)
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def register_domain_error_handlers(bp):
    """Map PlatformError / SQLAlchemyError raised in ``bp`` views to JSON."""

    @bp.errorhandler(PlatformError)
    def _handle_platform_error(error):
        log = logger.error if error.status >= 500 else logger.info
        log("%s: %s", error.code, error.message)
        return api_error(error.code, error.message, status=error.status, details=error.details)

    @bp.errorhandler(SQLAlchemyError)
    def _handle_db_error(error):
        db.session.rollback()
        logger.exception("Database error on %s %s", request.method, request.path)
        return api_error(E.DATABASE, "Database error")

    return bp
