"""
Offer Engine - Letter Document Model

LetterDocument is the single root entity. Snapshots are frozen; every change
produces a new value through DocumentStore.update().
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union


# =============================================================================
# ENUMS
# =============================================================================

class Theme(str, Enum):
    CLASSIC = "classic"
    MODERN = "modern"
    CREATIVE = "creative"
    REGAL = "regal"
    VIBRANT = "vibrant"
    FORMAL = "formal"
    TECH = "tech"
    CORPORATE = "corporate"


class OfferType(str, Enum):
    INTERNSHIP = "Internship"
    FULL_TIME = "Full-Time Employment"


class SalaryFrequency(str, Enum):
    ANNUALLY = "annually"
    MONTHLY = "monthly"
    HOURLY = "hourly"


class LogoAlignment(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class SectionKey(str, Enum):
    """Closed vocabulary of structural sections; element_order is a permutation of it."""
    HEADER = "header"
    DATE = "date"
    RECIPIENT = "recipient"
    SUBJECT = "subject"
    BODY = "body"
    SIGNATURE = "signature"


DEFAULT_SECTION_ORDER: Tuple[SectionKey, ...] = tuple(SectionKey)


# =============================================================================
# COMPENSATION (tagged union)
# =============================================================================

@dataclass(frozen=True)
class SalaryCompensation:
    amount: float
    frequency: SalaryFrequency = SalaryFrequency.ANNUALLY

    @property
    def kind(self) -> str:
        return "salary"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "amount": self.amount, "frequency": self.frequency.value}


@dataclass(frozen=True)
class PerksCompensation:
    description: str = ""

    @property
    def kind(self) -> str:
        return "perks"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "description": self.description}


Compensation = Union[SalaryCompensation, PerksCompensation]


def compensation_from_value(value: Union[Compensation, Mapping[str, Any], None]) -> Compensation:
    """
    Normalize a compensation patch value into exactly one variant.

    An amount selects the salary variant; its absence selects perks. Only the
    active variant's fields survive, so switching variant clears the other.
    """
    if isinstance(value, (SalaryCompensation, PerksCompensation)):
        return value
    if value is None:
        return PerksCompensation()

    amount = value.get("amount")
    if amount is not None:
        frequency = value.get("frequency") or SalaryFrequency.ANNUALLY
        return SalaryCompensation(amount=float(amount), frequency=SalaryFrequency(frequency))
    return PerksCompensation(description=value.get("description") or "")


# =============================================================================
# ROOT DOCUMENT
# =============================================================================

@dataclass(frozen=True)
class LetterDocument:
    """Immutable snapshot of every letter field, presentation choice and layout order."""

    # Company
    company_name: str = ""
    company_address: str = ""
    company_logo: Optional[str] = None
    company_email: Optional[str] = None
    company_phone: Optional[str] = None
    company_website: Optional[str] = None
    company_linkedin: Optional[str] = None

    # Candidate
    candidate_name: str = ""
    candidate_address: str = ""

    # Offer
    date: str = ""
    job_title: str = ""
    start_date: str = ""
    acceptance_deadline: str = ""
    manager_name: str = ""
    offer_type: OfferType = OfferType.INTERNSHIP
    compensation: Compensation = field(default_factory=PerksCompensation)

    # Free-form content with {token} placeholders
    body: str = ""

    # Signature block
    signer_name: str = ""
    signer_title: str = ""
    signer_signature: Optional[str] = None

    # Presentation
    theme: Theme = Theme.CLASSIC
    font_family: str = "Merriweather"
    heading_color: str = "#1D1D1D"
    body_color: str = "#1D1D1D"
    accent_color: str = "#2D3C77"
    logo_alignment: LogoAlignment = LogoAlignment.RIGHT
    element_order: Tuple[SectionKey, ...] = DEFAULT_SECTION_ORDER

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["compensation"] = self.compensation.to_dict()
        data["offer_type"] = self.offer_type.value
        data["theme"] = self.theme.value
        data["logo_alignment"] = self.logo_alignment.value
        data["element_order"] = [key.value for key in self.element_order]
        return data


@dataclass(frozen=True)
class RenderedLetterView:
    """Placeholder-resolved body plus the snapshot it was derived from. Never stored."""
    document: LetterDocument
    body: str


# =============================================================================
# DEFAULT DOCUMENT FACTORY
# =============================================================================

DEFAULT_BODY = """We are delighted to offer you the position of {jobTitle} at {companyName}. We were impressed with your qualifications and experience, and we believe you will be a valuable asset to our team.

This is a {offerType} position, starting on {startDate}. You will report to {managerName}. {compensationDetails}

Please review the attached documents for more details about your compensation, benefits, and the terms of your employment.

To accept this offer, please sign and return this letter by {acceptanceDeadline}.

We look forward to welcoming you to the team.

Sincerely,"""


def create_default_document(today: Optional[date] = None) -> LetterDocument:
    """Build a fresh seed document. Dates are relative to ``today``."""
    today = today or date.today()
    return LetterDocument(
        company_name="Innovate Inc.",
        company_address="123 Tech Avenue, Silicon Valley, CA 94000",
        company_email="hr@innovate.com",
        company_phone="1-800-555-1234",
        company_website="www.innovate.com",
        company_linkedin="linkedin.com/company/innovate-inc",
        candidate_name="John Doe",
        candidate_address="456 Home Street, Anytown, USA 12345",
        date=today.isoformat(),
        job_title="Software Engineer Intern",
        start_date=(today + timedelta(days=14)).isoformat(),
        acceptance_deadline=(today + timedelta(days=7)).isoformat(),
        manager_name="Jane Smith",
        offer_type=OfferType.INTERNSHIP,
        compensation=SalaryCompensation(amount=60000, frequency=SalaryFrequency.ANNUALLY),
        body=DEFAULT_BODY,
        signer_name="Alex Chen",
        signer_title="Hiring Manager",
    )
