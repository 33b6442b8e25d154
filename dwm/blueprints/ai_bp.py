"""
DWM Platform
AI Blueprint — SOP document analysis.

Endpoints:
    POST /api/v1/ai/analyze-sop

Body (JSON):
    fileName (str, required)
    fileContent (str, required): extracted document text
    extractSteps (bool, optional): return structured steps instead of markdown
    sopId (str, optional): store the result on this SOP; an empty step
        extraction leaves the SOP's steps as they are

Responses:
    200 {"analysis": "<markdown>"}                      (extractSteps off)
    200 {"steps": [{instruction, requirePhoto, requireEvidenceFile}]}
    400 missing fileName / fileContent, non-string sopId
    402 provider usage limit, 429 provider rate limit, 500 anything else

The AI call runs before any write; a failed call leaves the SOP untouched.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from dwm.ai.gateway import AIServiceError, LLMGateway, RateLimitError, UsageLimitError
from dwm.ai.sop_analyzer import SopAnalyzer
from dwm.services import sop_service
from dwm.utils.helpers import non_string_errors, parse_bool, validation_error

logger = logging.getLogger(__name__)

ai_bp = Blueprint("ai", __name__, url_prefix="/api/v1/ai")

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
USAGE_LIMIT_MESSAGE = "AI usage limit reached. Please add credits to continue."
FAILURE_MESSAGE = "AI analysis failed"


# ── Lazy singletons stored on Flask app (test-isolation safe) ───────────────

def _get_gateway():
    if not hasattr(current_app, "_ai_gateway"):
        current_app._ai_gateway = LLMGateway(current_app)
    return current_app._ai_gateway


def _get_sop_analyzer():
    if not hasattr(current_app, "_ai_sop_analyzer"):
        current_app._ai_sop_analyzer = SopAnalyzer(gateway=_get_gateway())
    return current_app._ai_sop_analyzer


# ── Routes ────────────────────────────────────────────────────────────────────


@ai_bp.route("/analyze-sop", methods=["POST"])
def analyze_sop():
    data = request.get_json(silent=True) or {}

    errors: dict[str, str] = {}
    file_name = data.get("fileName")
    file_content = data.get("fileContent")
    if not isinstance(file_name, str) or not file_name.strip():
        errors["fileName"] = "fileName is required."
    if not isinstance(file_content, str) or not file_content.strip():
        errors["fileContent"] = "fileContent is required."
    errors.update(non_string_errors(data, ("sopId",)))
    if errors:
        return validation_error(errors)

    extract_steps = parse_bool(data.get("extractSteps"))
    sop_id = data.get("sopId")
    if sop_id:
        sop = sop_service.get_sop(sop_id)
        if extract_steps and sop.is_locked:
            raise sop_service.SopLockedError(sop_id, ["steps"])

    analyzer = _get_sop_analyzer()
    try:
        if extract_steps:
            result = {"steps": analyzer.extract_steps(file_name, file_content)}
        else:
            result = {"analysis": analyzer.analyze(file_name, file_content)}
    except UsageLimitError:
        logger.warning("SOP analysis refused: usage limit", extra={"sop_id": sop_id})
        return jsonify({"error": USAGE_LIMIT_MESSAGE}), 402
    except RateLimitError:
        logger.warning("SOP analysis refused: rate limited", extra={"sop_id": sop_id})
        return jsonify({"error": RATE_LIMIT_MESSAGE}), 429
    except AIServiceError as exc:
        logger.error("SOP analysis failed: %s", exc, extra={"sop_id": sop_id})
        return jsonify({"error": FAILURE_MESSAGE}), 500

    if sop_id:
        if extract_steps:
            # Nothing extracted: keep the SOP's current steps
            if result["steps"]:
                sop_service.import_extracted_steps(sop_id, result["steps"])
        else:
            sop_service.apply_ai_analysis(sop_id, result["analysis"])
        result["sopId"] = sop_id

    return jsonify(result), 200
