"""
Program Fulfillment API Routes - Degree progress for the authenticated student.
"""
import logging
import os

import jwt as pyjwt
from flask import Blueprint, jsonify, request

from app.services.auth_tokens import require_user_id_from_request
from app.services.catalog_store import SupabaseCatalogSource
from app.services.fulfillment_errors import IntegrityError, NotFoundError, ValidationError
from app.services.option_display import SortStrategy
from app.services.program_fulfillment import compute_program_fulfillment
from app.services.supabase_client import SupabaseError

logger = logging.getLogger(__name__)

program_fulfillment_bp = Blueprint("program_fulfillment", __name__)


def _default_semester() -> str:
    return os.getenv("DEFAULT_SEMESTER", "FA25")


def get_catalog_source() -> SupabaseCatalogSource:
    return SupabaseCatalogSource()


@program_fulfillment_bp.route("/programs/<program_id>/fulfillment", methods=["GET"])
def get_program_fulfillment(program_id: str):
    """
    Compute the caller's progress through a program.

    Query Parameters:
        semester: Selected semester, e.g. "FA24" (default: DEFAULT_SEMESTER)
        sort: Option display order, "priority" (default) or "none"
        order: Optional comma-separated requirement processing order

    Returns:
        { "message": ..., "data": ProgramFulfillmentResult }
    """
    try:
        user_id = require_user_id_from_request()
    except pyjwt.ExpiredSignatureError:
        return jsonify({"error": "Token expired"}), 401
    except pyjwt.InvalidTokenError:
        return jsonify({"error": "Unauthorized"}), 401

    selected_semester = request.args.get("semester") or _default_semester()

    try:
        sort_strategy = SortStrategy(request.args.get("sort", SortStrategy.PRIORITY.value).lower())
    except ValueError:
        return jsonify({"error": "sort must be 'priority' or 'none'"}), 400

    raw_order = request.args.get("order")
    requirement_order = [r for r in raw_order.split(",") if r] if raw_order else None

    try:
        result = compute_program_fulfillment(
            program_id,
            user_id,
            selected_semester,
            get_catalog_source(),
            requirement_order=requirement_order,
            sort_strategy=sort_strategy,
        )
    except ValidationError as e:
        return jsonify({"error": e.message}), 400
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except IntegrityError as e:
        logger.error(
            f"Corrupt reference data for program {program_id} "
            f"(requirement={e.requirement_id}, node={e.node_id}): {e.message}"
        )
        return jsonify({"error": "Requirement data is inconsistent"}), 500
    except SupabaseError as e:
        logger.error(f"Data store unavailable while computing program {program_id}: {e}")
        return jsonify({"error": "Bad gateway - upstream service unavailable"}), 502

    return jsonify({
        "message": "Program fetched successfully",
        "data": result.to_dict(),
    }), 200
