"""
Tests: AI SOP analysis.

Covers:
    - LLM Gateway retry behaviour and typed provider errors
    - SopAnalyzer (markdown analysis, step extraction, reply parsing)
    - POST /api/v1/ai/analyze-sop (local stub, error mapping, storing on an SOP)
"""

import json

import pytest

from dwm.ai.gateway import (
    AIServiceError,
    LLMGateway,
    LLMProvider,
    LocalStubProvider,
    RateLimitError,
    UsageLimitError,
    classify_provider_error,
)
from dwm.ai.sop_analyzer import FALLBACK_ANALYSIS, SopAnalyzer
from dwm.services import sop_service

DOCUMENT = (
    "Purpose: safe start-up of the boiler.\n"
    "1. Take a photo of the pressure gauge\n"
    "2. Record the water level in the log\n"
    "3. Open the feed valve\n"
)


class _HTTPError(Exception):
    def __init__(self, status_code, message="provider error"):
        super().__init__(message)
        self.status_code = status_code


class FailingProvider(LLMProvider):
    def __init__(self, exc):
        self.exc = exc
        self.calls = 0

    def chat(self, messages, model, **kwargs):
        self.calls += 1
        raise self.exc


class StubGateway:
    """Gateway double returning a canned reply or raising."""

    def __init__(self, content="", exc=None):
        self.content = content
        self.exc = exc
        self.calls = []

    def chat(self, messages, model=None, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        if self.exc:
            raise self.exc
        return {"content": self.content, "prompt_tokens": 1, "completion_tokens": 1, "model": "stub"}


@pytest.fixture()
def gateway(app):
    gw = LLMGateway(app, backoff_base=0)
    return gw


@pytest.fixture()
def use_analyzer(app, monkeypatch):
    """Swap the analyzer the blueprint uses for one backed by a StubGateway."""
    def _install(stub):
        monkeypatch.setattr(app, "_ai_sop_analyzer", SopAnalyzer(gateway=stub), raising=False)
        return stub
    return _install


# ═════════════════════════════════════════════════════════════════════════════
# 1. GATEWAY
# ═════════════════════════════════════════════════════════════════════════════

class TestGateway:

    def test_testing_config_routes_to_local_stub(self, gateway):
        assert set(gateway._providers) == {"local"}
        result = gateway.chat([{"role": "user", "content": "hello"}], purpose="test")
        assert result["provider"] == "local"
        assert result["model"] == "local-stub"
        assert "latency_ms" in result

    def test_rate_limit_retried_then_raised(self, gateway):
        provider = FailingProvider(_HTTPError(429))
        gateway._providers["local"] = provider

        with pytest.raises(RateLimitError):
            gateway.chat([{"role": "user", "content": "x"}], model="local-stub", max_retries=3)
        assert provider.calls == 3

    def test_usage_limit_never_retried(self, gateway):
        provider = FailingProvider(_HTTPError(402))
        gateway._providers["local"] = provider

        with pytest.raises(UsageLimitError):
            gateway.chat([{"role": "user", "content": "x"}], model="local-stub", max_retries=3)
        assert provider.calls == 1

    def test_other_errors_become_ai_service_error(self, gateway):
        gateway._providers["local"] = FailingProvider(ValueError("boom"))
        with pytest.raises(AIServiceError) as exc_info:
            gateway.chat([{"role": "user", "content": "x"}], model="local-stub", max_retries=2)
        assert type(exc_info.value) is AIServiceError
        assert exc_info.value.provider == "local"

    def test_classify_provider_error(self):
        assert isinstance(classify_provider_error(_HTTPError(429), "openai"), RateLimitError)
        assert isinstance(classify_provider_error(_HTTPError(402), "openai"), UsageLimitError)
        quota = _HTTPError(400, "Your credit balance is too low")
        assert isinstance(classify_provider_error(quota, "anthropic"), UsageLimitError)
        assert type(classify_provider_error(_HTTPError(503), "gemini")) is AIServiceError

    def test_local_stub_extracts_numbered_lines(self):
        reply = LocalStubProvider().chat([
            {"role": "system", "content": 'Respond with {"steps": []}'},
            {"role": "user", "content": f"Analyze:\n\n{DOCUMENT}"},
        ])
        steps = json.loads(reply["content"])["steps"]
        assert [s["instruction"] for s in steps] == [
            "Take a photo of the pressure gauge",
            "Record the water level in the log",
            "Open the feed valve",
        ]
        assert steps[0]["requirePhoto"] is True
        assert steps[1]["requireEvidenceFile"] is True


# ═════════════════════════════════════════════════════════════════════════════
# 2. SOP ANALYZER
# ═════════════════════════════════════════════════════════════════════════════

class TestSopAnalyzer:

    def test_no_gateway_raises(self):
        with pytest.raises(AIServiceError):
            SopAnalyzer().analyze("a.txt", "text")

    def test_analyze_returns_markdown(self):
        stub = StubGateway(content="## Summary\nFine.")
        assert SopAnalyzer(gateway=stub).analyze("a.txt", "text") == "## Summary\nFine."
        assert stub.calls[0]["purpose"] == "sop_analysis"
        assert 'titled "a.txt"' in stub.calls[0]["messages"][1]["content"]

    def test_empty_reply_falls_back(self):
        assert SopAnalyzer(gateway=StubGateway(content="  ")).analyze("a.txt", "text") == FALLBACK_ANALYSIS

    def test_extract_steps_from_fenced_json(self):
        content = (
            '```json\n{"steps": [{"instruction": "Lock out the panel", "requirePhoto": true},'
            ' {"instruction": "  "}, "junk"]}\n```'
        )
        steps = SopAnalyzer(gateway=StubGateway(content=content)).extract_steps("a.txt", "text")
        assert steps == [
            {"instruction": "Lock out the panel", "requirePhoto": True, "requireEvidenceFile": False},
        ]

    def test_extract_steps_from_json_inside_prose(self):
        content = 'Here you go: {"steps": [{"instruction": "Sign the permit"}]} Thanks.'
        steps = SopAnalyzer(gateway=StubGateway(content=content)).extract_steps("a.txt", "text")
        assert [s["instruction"] for s in steps] == ["Sign the permit"]

    def test_unparseable_reply_yields_no_steps(self):
        assert SopAnalyzer(gateway=StubGateway(content="not json")).extract_steps("a.txt", "text") == []

    def test_provider_errors_propagate(self):
        analyzer = SopAnalyzer(gateway=StubGateway(exc=RateLimitError("slow down")))
        with pytest.raises(RateLimitError):
            analyzer.extract_steps("a.txt", "text")


# ═════════════════════════════════════════════════════════════════════════════
# 3. ANALYZE-SOP API
# ═════════════════════════════════════════════════════════════════════════════

class TestAnalyzeSopAPI:

    URL = "/api/v1/ai/analyze-sop"

    def test_missing_fields_400(self, client):
        res = client.post(self.URL, json={"fileName": "boiler.txt"})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_REQUIRED"
        assert "fileContent" in body["details"]

    def test_analysis_with_local_stub(self, client):
        res = client.post(self.URL, json={"fileName": "boiler.txt", "fileContent": DOCUMENT})
        assert res.status_code == 200
        analysis = res.get_json()["analysis"]
        assert "## Summary" in analysis
        assert "## Risk Level" in analysis

    def test_extract_steps_with_local_stub(self, client):
        res = client.post(self.URL, json={
            "fileName": "boiler.txt", "fileContent": DOCUMENT, "extractSteps": True,
        })
        assert res.status_code == 200
        steps = res.get_json()["steps"]
        assert len(steps) == 3
        assert steps[0]["requirePhoto"] is True

    def test_extracted_steps_imported_into_sop(self, client):
        sop = sop_service.create_sop("Boiler start-up", "file", "Facility Supervisor", file_name="boiler.txt")
        res = client.post(self.URL, json={
            "fileName": "boiler.txt", "fileContent": DOCUMENT,
            "extractSteps": True, "sopId": sop.id,
        })
        assert res.status_code == 200
        assert res.get_json()["sopId"] == sop.id

        stored = sop_service.get_sop(sop.id)
        assert stored.format == "block"
        assert [s["instruction"] for s in stored.steps][2] == "Open the feed valve"

    def test_analysis_stored_on_sop(self, client):
        sop = sop_service.create_sop("Boiler start-up", "file", "Facility Supervisor")
        res = client.post(self.URL, json={"fileName": "b.txt", "fileContent": DOCUMENT, "sopId": sop.id})
        assert res.status_code == 200
        assert sop_service.get_sop(sop.id).ai_analysis == res.get_json()["analysis"]

    def test_unknown_sop_404(self, client):
        res = client.post(self.URL, json={"fileName": "b.txt", "fileContent": DOCUMENT, "sopId": "SOP-404"})
        assert res.status_code == 404

    def test_extract_into_effective_sop_409(self, client):
        sop = sop_service.create_sop("Locked", "block", "QC Lead")
        sop_service.transition_status(sop.id, "Effective", force=True)
        res = client.post(self.URL, json={
            "fileName": "b.txt", "fileContent": DOCUMENT, "extractSteps": True, "sopId": sop.id,
        })
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    @pytest.mark.parametrize(
        "exc,status,message",
        [
            (UsageLimitError("credits"), 402, "AI usage limit reached. Please add credits to continue."),
            (RateLimitError("throttled"), 429, "Rate limit exceeded. Please try again in a moment."),
            (AIServiceError("timeout"), 500, "AI analysis failed"),
        ],
    )
    def test_provider_error_mapping(self, client, use_analyzer, exc, status, message):
        use_analyzer(StubGateway(exc=exc))
        res = client.post(self.URL, json={"fileName": "b.txt", "fileContent": DOCUMENT})
        assert res.status_code == status
        assert res.get_json() == {"error": message}

    def test_failed_call_leaves_sop_untouched(self, client, use_analyzer):
        sop = sop_service.create_sop("Untouched", "block", "QC Lead")
        steps_before = list(sop.steps)
        use_analyzer(StubGateway(exc=AIServiceError("timeout")))

        res = client.post(self.URL, json={
            "fileName": "b.txt", "fileContent": DOCUMENT, "extractSteps": True, "sopId": sop.id,
        })
        assert res.status_code == 500
        stored = sop_service.get_sop(sop.id)
        assert stored.steps == steps_before
        assert stored.format == "block"

    def test_empty_extraction_keeps_sop_steps(self, client, use_analyzer):
        sop = sop_service.create_sop("Keep steps", "file", "QC Lead", file_name="keep.txt")
        use_analyzer(StubGateway(content="I could not find any steps."))

        res = client.post(self.URL, json={
            "fileName": "keep.txt", "fileContent": DOCUMENT, "extractSteps": True, "sopId": sop.id,
        })
        assert res.status_code == 200
        assert res.get_json() == {"steps": [], "sopId": sop.id}
        stored = sop_service.get_sop(sop.id)
        assert stored.format == "file"
        assert stored.steps == []

    def test_non_string_sop_id_400(self, client):
        res = client.post(self.URL, json={"fileName": "b.txt", "fileContent": DOCUMENT, "sopId": 7})
        assert res.status_code == 400
        assert "sopId" in res.get_json()["details"]
