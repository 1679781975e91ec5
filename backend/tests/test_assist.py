"""
Generative Assist Tests

Verifies:
1. The request carries the prompt, API key and response schema
2. Model output maps onto a document patch (camelCase -> document fields)
3. A positive salary selects the salary variant; otherwise perks
4. Transport errors, bad JSON and schema violations surface as GenerationError
"""

import json

import httpx
import pytest

from offer_engine.errors import GenerationError
from offer_engine.models.letter import OfferType, PerksCompensation, SalaryCompensation, SalaryFrequency
from offer_engine.services.assist import GeminiAssistClient, GeneratedLetter
from offer_engine.services.store import DocumentStore


# =============================================================================
# FIXTURES
# =============================================================================

def gemini_reply(payload, status=200):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return httpx.Response(status, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


class FakeGemini:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def handler(self, request):
        self.requests.append(request)
        return self.response

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


SAMPLE = {
    "companyName": "Acme Robotics",
    "candidateName": "Priya Patel",
    "jobTitle": "Firmware Engineer",
    "startDate": "2025-10-01",
    "salary": 85000,
    "salaryFrequency": "annually",
    "managerName": "Sam Lee",
    "offerType": "Full-Time Employment",
    "signerName": "Dana Cruz",
    "signerTitle": "VP Engineering",
    "body": "Welcome to {companyName}. {compensationDetails}",
}


# =============================================================================
# RESPONSE MAPPING
# =============================================================================

class TestGeneratedLetter:

    def test_salary_patch(self):
        patch = GeneratedLetter.model_validate(SAMPLE).to_patch()
        assert patch["company_name"] == "Acme Robotics"
        assert patch["candidate_name"] == "Priya Patel"
        assert patch["offer_type"] == "Full-Time Employment"
        assert patch["compensation"] == {"amount": 85000.0, "frequency": "annually"}
        assert "salary" not in patch

    def test_null_salary_selects_perks(self):
        patch = GeneratedLetter.model_validate({"salary": None, "perksAndBenefits": "Mentorship"}).to_patch()
        assert patch == {"compensation": {"description": "Mentorship"}}

    def test_zero_salary_selects_perks(self):
        patch = GeneratedLetter.model_validate({"salary": 0}).to_patch()
        assert patch == {"compensation": {"description": ""}}

    def test_no_compensation_fields_leaves_compensation_alone(self):
        assert GeneratedLetter.model_validate({"jobTitle": "Analyst"}).to_patch() == {"job_title": "Analyst"}

    def test_unknown_keys_ignored(self):
        assert GeneratedLetter.model_validate({"mood": "cheerful"}).to_patch() == {}

    def test_patch_applies_to_store(self):
        store = DocumentStore()
        doc = store.update(GeneratedLetter.model_validate(SAMPLE).to_patch())
        assert doc.offer_type == OfferType.FULL_TIME
        assert doc.compensation == SalaryCompensation(85000, SalaryFrequency.ANNUALLY)
        assert doc.signer_title == "VP Engineering"

    def test_perks_patch_applies_to_store(self):
        store = DocumentStore()
        doc = store.update(GeneratedLetter.model_validate({"perksAndBenefits": "Free lunch"}).to_patch())
        assert doc.compensation == PerksCompensation("Free lunch")


# =============================================================================
# CLIENT
# =============================================================================

class TestGeminiAssistClient:

    async def test_request_shape(self):
        gemini = FakeGemini(gemini_reply(SAMPLE))
        async with gemini.client() as client:
            await GeminiAssistClient(api_key="test-key", model="gemini-test", client=client).generate_patch(
                "Offer a firmware role at Acme"
            )
        request = gemini.requests[0]
        assert request.url.path.endswith("/models/gemini-test:generateContent")
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert "Offer a firmware role at Acme" in body["contents"][0]["parts"][0]["text"]
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert "companyName" in body["generationConfig"]["responseSchema"]["properties"]

    async def test_returns_patch(self):
        gemini = FakeGemini(gemini_reply(SAMPLE))
        async with gemini.client() as client:
            patch = await GeminiAssistClient(api_key="k", client=client).generate_patch("prompt")
        assert patch["job_title"] == "Firmware Engineer"
        assert patch["compensation"]["amount"] == 85000.0

    async def test_whitespace_around_json(self):
        gemini = FakeGemini(gemini_reply("\n  " + json.dumps({"jobTitle": "Analyst"}) + "\n"))
        async with gemini.client() as client:
            patch = await GeminiAssistClient(api_key="k", client=client).generate_patch("prompt")
        assert patch == {"job_title": "Analyst"}

    async def test_missing_api_key(self):
        gemini = FakeGemini(gemini_reply(SAMPLE))
        async with gemini.client() as client:
            with pytest.raises(GenerationError, match="not configured"):
                await GeminiAssistClient(api_key="", client=client).generate_patch("prompt")
        assert gemini.requests == []

    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, json={"candidates": []}),
        gemini_reply("this is not json"),
        gemini_reply({"offerType": "Contract"}),
        gemini_reply({"salaryFrequency": "weekly"}),
    ])
    async def test_failures_raise_generation_error(self, response):
        gemini = FakeGemini(response)
        async with gemini.client() as client:
            with pytest.raises(GenerationError, match="Failed to generate letter content"):
                await GeminiAssistClient(api_key="k", client=client).generate_patch("prompt")

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(GenerationError):
                await GeminiAssistClient(api_key="k", client=client).generate_patch("prompt")
