"""
DWM Platform
SOP Analyzer Assistant.

Two calls over an uploaded SOP document:
    1. analyze()        → markdown review (summary, steps, compliance flags,
                          recommendations, risk level)
    2. extract_steps()  → structured step list ready to import into the
                          block editor

Provider errors (RateLimitError / UsageLimitError / AIServiceError) propagate
to the caller unchanged; nothing here touches the database.
"""

import json
import logging
import re

from dwm.ai.gateway import AIServiceError
from dwm.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM_PROMPT = """You are an expert SOP (Standard Operating Procedure) analyst. Analyze the following document content and provide:

1. **Summary**: A concise 2-3 sentence summary of the SOP.
2. **Extracted Steps**: Break down the document into clear, actionable steps. Number each step.
3. **Compliance Flags**: Identify any potential compliance issues, ambiguities, or missing elements (e.g., missing safety warnings, unclear responsibilities, no evidence requirements).
4. **Recommendations**: Suggest improvements for clarity, safety, and regulatory compliance.
5. **Risk Level**: Rate the overall risk level (Low, Medium, High) based on the content.

Format your response in clean markdown."""

EXTRACTION_SYSTEM_PROMPT = """You are an expert SOP (Standard Operating Procedure) analyst. Break the following document into clear, actionable steps in execution order.

For each step decide whether the operator must attach a photo (requirePhoto) and whether a supporting document, log or certificate must be uploaded (requireEvidenceFile).

Respond with ONLY a JSON object of this shape and no other text:
{"steps": [{"instruction": "string", "requirePhoto": false, "requireEvidenceFile": false}]}"""

FALLBACK_ANALYSIS = "Unable to generate analysis."


class SopAnalyzer:
    """AI-powered analysis of uploaded SOP documents."""

    def __init__(self, gateway=None):
        self.gateway = gateway

    @staticmethod
    def _user_message(file_name: str, file_content: str) -> dict:
        return {
            "role": "user",
            "content": f'Analyze this SOP document titled "{file_name}":\n\n{file_content}',
        }

    def _require_gateway(self):
        if not self.gateway:
            raise AIServiceError("LLM Gateway not available")
        return self.gateway

    def analyze(self, file_name: str, file_content: str) -> str:
        """Markdown analysis of the document."""
        gateway = self._require_gateway()
        response = gateway.chat(
            messages=[
                {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                self._user_message(file_name, file_content),
            ],
            purpose="sop_analysis",
        )
        content = (response.get("content") or "").strip()
        return content or FALLBACK_ANALYSIS

    def extract_steps(self, file_name: str, file_content: str) -> list[dict]:
        """Step list parsed from the model's JSON reply.

        Returns:
            [{"instruction": str, "requirePhoto": bool, "requireEvidenceFile": bool}, ...]
            Steps with an empty instruction are dropped; an unparseable reply
            yields an empty list.
        """
        gateway = self._require_gateway()
        response = gateway.chat(
            messages=[
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                self._user_message(file_name, file_content),
            ],
            purpose="sop_step_extraction",
            temperature=0.1,
        )
        parsed = self._parse_response(response.get("content", ""))
        raw_steps = parsed.get("steps") if isinstance(parsed, dict) else None
        if not isinstance(raw_steps, list):
            logger.warning("Step extraction returned no steps list for %s", file_name)
            return []

        steps = []
        for raw in raw_steps:
            if not isinstance(raw, dict):
                continue
            instruction = str(raw.get("instruction") or "").strip()
            if not instruction:
                continue
            steps.append({
                "instruction": instruction,
                "requirePhoto": parse_bool(raw.get("requirePhoto")),
                "requireEvidenceFile": parse_bool(raw.get("requireEvidenceFile")),
            })
        return steps

    @staticmethod
    def _parse_response(content: str) -> dict:
        cleaned = (content or "").strip()
        if cleaned.startswith("```"):
            cleaned = re.sub(r'^```\w*\n?', '', cleaned)
            cleaned = re.sub(r'\n?```$', '', cleaned)

        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            match = re.search(r"\{.*\}", cleaned, re.DOTALL)
            if match:
                try:
                    return json.loads(match.group())
                except json.JSONDecodeError:
                    return {}
        return {}
