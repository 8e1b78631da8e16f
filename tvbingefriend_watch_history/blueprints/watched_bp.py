"""HTTP routes for the user's watch history."""
import azure.functions as func
import logging
import json
import uuid

from tvbingefriend_watch_history.errors import InvalidCursorError, WatchedItemAlreadyExistsError
from tvbingefriend_watch_history.models.database import get_session_factory
from tvbingefriend_watch_history.repos import WatchedRepository
from tvbingefriend_watch_history.state.recommendations_state import MEDIA_TYPES

# Initialize blueprint
bp = func.Blueprint()

logger = logging.getLogger(__name__)

# Set by the platform's authentication layer once the session is validated
USER_ID_HEADER = "x-ms-client-principal-id"

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _json_response(data, status_code: int) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(data),
        status_code=status_code,
        mimetype="application/json",
        headers={"Cache-Control": "no-store, private"}
    )


def _error_response(error: str, status_code: int, message: str | None = None, details=None) -> func.HttpResponse:
    body = {"error": error}
    if message:
        body["message"] = message
    if details:
        body["details"] = details
    return _json_response(body, status_code)


def _get_user_id(req: func.HttpRequest) -> str | None:
    for key, value in req.headers.items():
        if key.lower() == USER_ID_HEADER and value:
            return value
    return None


def _is_uuid(value) -> bool:
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def validate_pagination(params) -> tuple[dict, dict]:
    """
    Validate limit/cursor query parameters.

    Returns:
        (query, errors) - errors is empty when the parameters are valid
    """
    errors = {}
    limit = DEFAULT_LIMIT
    raw_limit = params.get("limit")
    if raw_limit not in (None, ""):
        try:
            limit = int(raw_limit)
            if limit < 1 or limit > MAX_LIMIT:
                errors["limit"] = f"limit must be between 1 and {MAX_LIMIT}"
        except ValueError:
            errors["limit"] = "limit must be an integer"

    cursor = params.get("cursor") or None
    if cursor is not None and not _is_uuid(cursor):
        errors["cursor"] = "cursor must be a UUID"

    return {"limit": limit, "cursor": cursor}, errors


def validate_watched_command(body) -> dict:
    """
    Validate a POST /me/watched body.

    Returns:
        Field name -> error message; empty when the body is valid
    """
    if not isinstance(body, dict):
        return {"body": "Request body must be a JSON object"}

    errors = {}
    external_movie_id = body.get("external_movie_id")
    if not isinstance(external_movie_id, str) or not external_movie_id:
        errors["external_movie_id"] = "External movie ID is required"

    if body.get("media_type") not in MEDIA_TYPES:
        errors["media_type"] = "Media type must be 'movie' or 'series'"

    title = body.get("title")
    if not isinstance(title, str) or not title:
        errors["title"] = "Title is required and must be at least 1 character"

    year = body.get("year")
    if year is not None and (isinstance(year, bool) or not isinstance(year, int)):
        errors["year"] = "Year must be an integer"

    meta_data = body.get("meta_data")
    if not isinstance(meta_data, dict):
        errors["meta_data"] = "meta_data is required"
    elif not isinstance(meta_data.get("poster_path"), str):
        errors["meta_data"] = "meta_data must contain poster_path field"

    return errors


@bp.route(route="me/watched", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_watched_items(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get the user's watch history, newest first.

    Query Parameters:
        - limit: Items per page (default: 20, max: 100)
        - cursor: Id of the last item of the previous page
    """
    try:
        user_id = _get_user_id(req)
        if not user_id:
            return _error_response("Unauthorized", 401, "Authentication required")

        query, errors = validate_pagination(req.params)
        if errors:
            return _error_response("ValidationError", 400, "Invalid query parameters", errors)

        db = get_session_factory()()
        try:
            page = WatchedRepository(db).list_page(user_id, limit=query["limit"], cursor=query["cursor"])
        except InvalidCursorError:
            return _error_response("ValidationError", 400, "Invalid query parameters",
                                   {"cursor": "cursor does not match any watched item"})
        finally:
            db.close()

        return _json_response(page, 200)

    except Exception as e:
        logger.error(f"Error fetching watched items: {str(e)}", exc_info=True)
        return _error_response("ServerError", 500, "Internal server error")


@bp.route(route="me/watched", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def create_watched_item(req: func.HttpRequest) -> func.HttpResponse:
    """
    Mark a movie or series as watched.

    Responds 201 with the created item, or 409 if it is already in the history.
    """
    try:
        user_id = _get_user_id(req)
        if not user_id:
            return _error_response("Unauthorized", 401, "Authentication required")

        try:
            body = req.get_json()
        except ValueError:
            return _error_response("InvalidJSON", 400, "Invalid JSON body")

        errors = validate_watched_command(body)
        if errors:
            return _error_response("ValidationError", 400, "Validation error", errors)

        db = get_session_factory()()
        try:
            item = WatchedRepository(db).create(user_id, body)
            response = item.to_dict()
        except WatchedItemAlreadyExistsError:
            return _error_response("Conflict", 409, "Already marked as watched")
        finally:
            db.close()

        return _json_response(response, 201)

    except Exception as e:
        logger.error(f"Error creating watched item: {str(e)}", exc_info=True)
        return _error_response("ServerError", 500, "Internal server error")


@bp.route(route="me/watched/{id}", methods=["DELETE"], auth_level=func.AuthLevel.ANONYMOUS)
def delete_watched_item(req: func.HttpRequest) -> func.HttpResponse:
    """Remove an item from the user's watch history."""
    try:
        user_id = _get_user_id(req)
        if not user_id:
            return _error_response("Unauthorized", 401, "Authentication required")

        item_id = req.route_params.get('id')
        if not item_id or not _is_uuid(item_id):
            return _error_response("ValidationError", 400, "Invalid watched item ID")

        db = get_session_factory()()
        try:
            deleted = WatchedRepository(db).delete(user_id, item_id)
        finally:
            db.close()

        if not deleted:
            return _error_response("NotFound", 404, "Watched item not found")

        return func.HttpResponse(status_code=204)

    except Exception as e:
        logger.error(f"Error deleting watched item: {str(e)}", exc_info=True)
        return _error_response("ServerError", 500, "Internal server error")


# noinspection PyUnusedLocal
@bp.route(route="me/watched/health", methods=["GET"])
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint."""
    return _json_response({
        "status": "healthy",
        "service": "watch-history-service",
        "version": "1.0.0"
    }, 200)
