"""
Workspace Blueprint — cross-model search and data-quality reports.

Endpoints:
    GET /api/v1/search?q=&departmentId=&limit=       — SOPs + tasks
    GET /api/v1/data-quality/dangling-references     — unresolved name/id strings
"""

import logging

from flask import Blueprint, jsonify, request

from dwm.services import workspace_service

logger = logging.getLogger(__name__)

workspace_bp = Blueprint("workspace", __name__, url_prefix="/api/v1")

_MAX_SEARCH_LIMIT = 50


@workspace_bp.route("/search", methods=["GET"])
def search():
    query = request.args.get("q", "")
    limit = request.args.get("limit", workspace_service.DEFAULT_SEARCH_LIMIT, type=int)
    limit = max(1, min(limit, _MAX_SEARCH_LIMIT))
    result = workspace_service.global_search(
        query,
        department_id=request.args.get("departmentId"),
        limit=limit,
    )
    result["query"] = query
    return jsonify(result), 200


@workspace_bp.route("/data-quality/dangling-references", methods=["GET"])
def dangling_references():
    return jsonify(workspace_service.find_dangling_references()), 200
