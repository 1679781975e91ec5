"""
Offer Engine - Generative Assist

Black-box collaborator: a free-text prompt goes to Gemini with a JSON
response schema; the reply is validated and converted into a document patch
that is applied exactly like a user edit.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import GenerationError

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PROMPT_TEMPLATE = (
    "Based on the following request, generate the details for a professional offer letter. "
    'Request: "{prompt}"'
)

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "companyName": {"type": "STRING"},
        "candidateName": {"type": "STRING"},
        "jobTitle": {"type": "STRING"},
        "startDate": {"type": "STRING", "description": "Date in YYYY-MM-DD format"},
        "salary": {"type": "NUMBER", "nullable": True, "description": "The salary, or null if unpaid."},
        "salaryFrequency": {"type": "STRING", "enum": ["annually", "monthly", "hourly"]},
        "perksAndBenefits": {
            "type": "STRING",
            "description": "List of perks if the position is unpaid or has extra benefits.",
        },
        "managerName": {"type": "STRING"},
        "offerType": {"type": "STRING", "enum": ["Internship", "Full-Time Employment"]},
        "signerName": {"type": "STRING", "description": "The name of the person signing the letter."},
        "signerTitle": {"type": "STRING", "description": "The job title of the person signing the letter."},
        "body": {
            "type": "STRING",
            "description": (
                "The full body of the offer letter, using placeholders like {jobTitle}, "
                "{compensationDetails}, {signerName} etc. where appropriate."
            ),
        },
    },
}

_FIELD_MAP = {
    "companyName": "company_name",
    "candidateName": "candidate_name",
    "jobTitle": "job_title",
    "startDate": "start_date",
    "managerName": "manager_name",
    "offerType": "offer_type",
    "signerName": "signer_name",
    "signerTitle": "signer_title",
    "body": "body",
}


class GeneratedLetter(BaseModel):
    """Partial letter as returned by the model. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore")

    companyName: Optional[str] = None
    candidateName: Optional[str] = None
    jobTitle: Optional[str] = None
    startDate: Optional[str] = None
    salary: Optional[float] = None
    salaryFrequency: Optional[Literal["annually", "monthly", "hourly"]] = None
    perksAndBenefits: Optional[str] = None
    managerName: Optional[str] = None
    offerType: Optional[Literal["Internship", "Full-Time Employment"]] = None
    signerName: Optional[str] = None
    signerTitle: Optional[str] = None
    body: Optional[str] = None

    def to_patch(self) -> Dict[str, Any]:
        """Document patch; a positive salary selects the salary variant, anything else perks."""
        data = self.model_dump(exclude_none=True)
        patch = {_FIELD_MAP[key]: value for key, value in data.items() if key in _FIELD_MAP}
        if self.salary is not None and self.salary > 0:
            patch["compensation"] = {
                "amount": self.salary,
                "frequency": self.salaryFrequency or "annually",
            }
        elif {"salary", "perksAndBenefits"} & self.model_fields_set:
            patch["compensation"] = {"description": self.perksAndBenefits or ""}
        return patch


class GeminiAssistClient:
    """Calls the Gemini generateContent REST endpoint with a fixed response schema."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.model = model
        self.client = client
        self.timeout = timeout

    async def generate_patch(self, prompt: str) -> Dict[str, Any]:
        if not self.api_key:
            raise GenerationError("Generative assist is not configured (GEMINI_API_KEY not set)")

        payload = {
            "contents": [{"parts": [{"text": PROMPT_TEMPLATE.format(prompt=prompt)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        try:
            if self.client is not None:
                response = await self._post(self.client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, payload)
            response.raise_for_status()
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
            generated = GeneratedLetter.model_validate(json.loads(text.strip()))
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            logger.error(f"Error generating letter content: {e}")
            raise GenerationError(
                "Failed to generate letter content. Please check your prompt and API key."
            ) from e
        return generated.to_patch()

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post(
            GEMINI_ENDPOINT.format(model=self.model),
            headers={"x-goog-api-key": self.api_key},
            json=payload,
        )
