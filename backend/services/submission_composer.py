"""
Submission Composer - Builds the deliverable for a resolved agency.

EMAIL channel -> EmailPayload: a statutory request letter addressed to the
unit's intake address, with the requester's reply-to.

PORTAL channel -> PortalManifest: the ordered list of portal form fields to
fill (and with what), including the extended field set for units whose form
hides extra fields behind dependent selects. The manifest is only a plan;
driving the browser is left to the caller.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Union

from constants import (
    DEFAULT_FEE_CATEGORY,
    DEFAULT_FEE_WAIVER_JUSTIFICATION,
    EXTENDED_FORM_UNIT_IDS,
    FBI_ADDRESS_TYPE_DOMESTIC,
    FBI_PERJURY_YES,
    FBI_REQUESTER_MYSELF,
    FBI_SUBJECT_ALL_OTHER,
    FEE_CATEGORY_LABELS,
    PORTAL_COUNTRY_UNITED_STATES,
    PORTAL_FEE_CATEGORY_INDEX,
    PORTAL_FIELD_ADDRESS_LINE1,
    PORTAL_FIELD_ADDRESS_LINE2,
    PORTAL_FIELD_CITY,
    PORTAL_FIELD_COUNTRY,
    PORTAL_FIELD_EMAIL,
    PORTAL_FIELD_EXPEDITED,
    PORTAL_FIELD_FBI_ADDRESS_TYPE,
    PORTAL_FIELD_FBI_DATE,
    PORTAL_FIELD_FBI_DESCRIPTION,
    PORTAL_FIELD_FBI_PERJURY_CONFIRM,
    PORTAL_FIELD_FBI_REQUEST_SUBJECT,
    PORTAL_FIELD_FBI_REQUESTER_TYPE,
    PORTAL_FIELD_FBI_SIGNATURE,
    PORTAL_FIELD_FBI_STATE,
    PORTAL_FIELD_FEE_AMOUNT,
    PORTAL_FIELD_FEE_CATEGORY,
    PORTAL_FIELD_FEE_WAIVER,
    PORTAL_FIELD_FEE_WAIVER_EXPLANATION,
    PORTAL_FIELD_FIRST_NAME,
    PORTAL_FIELD_LAST_NAME,
    PORTAL_FIELD_PHONE,
    PORTAL_FIELD_REQUEST_DESCRIPTION,
    PORTAL_FIELD_STATE,
    PORTAL_FIELD_ZIP,
    PORTAL_STATE_INDEX,
    unit_page_url,
)
from scrapers.models import CanonicalRecord
from services.agency_resolver import Channel, ResolutionResult

logger = logging.getLogger(__name__)

SUBJECT_PREFIX = "FOIA Request - "
BRIEF_DESCRIPTION_MAX_LENGTH = 60

ACTION_FILL = "fill"
ACTION_SELECT = "select"


class CompositionError(ValueError):
    """The requested payload cannot be built from the given inputs."""
    pass


@dataclass
class RequesterDetails:
    """Who is asking, and on what fee terms."""
    first_name: str
    last_name: str
    email: str
    address_line1: str
    city: str
    state: str
    zip_code: str
    phone: str = ""
    address_line2: str = ""
    fee_category: str = DEFAULT_FEE_CATEGORY
    max_fee: Union[int, float] = 25
    fee_waiver_requested: bool = False
    fee_waiver_reason: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def formatted_address(self) -> str:
        street = self.address_line1
        if self.address_line2:
            street = f"{street}, {self.address_line2}"
        return f"{street}, {self.city}, {self.state} {self.zip_code}"

    @property
    def fee_category_key(self) -> str:
        """Known fee category, falling back to 'other'."""
        if self.fee_category in FEE_CATEGORY_LABELS:
            return self.fee_category
        return DEFAULT_FEE_CATEGORY


@dataclass
class EmailPayload:
    to: str
    subject: str
    body: str
    reply_to: str = ""
    reply_to_name: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "to": self.to,
            "subject": self.subject,
            "body": self.body,
            "reply_to": self.reply_to,
            "reply_to_name": self.reply_to_name,
        }


@dataclass
class PortalField:
    """One form interaction: fill a text input or pick a select option."""
    name: str
    value: str
    action: str = ACTION_FILL
    settle_ms: int = 0  # Wait after this step (dependent fields appear)

    @property
    def selector(self) -> str:
        return f"#{self.name}"


@dataclass
class PortalManifest:
    unit_id: str
    portal_url: str
    extended_form: bool
    fields: List[PortalField] = field(default_factory=list)

    def as_dict(self) -> Dict[str, str]:
        """Ordered field name -> value map."""
        return {f.name: f.value for f in self.fields}

    def to_dict(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "portal_url": self.portal_url,
            "extended_form": self.extended_form,
            "fields": [
                {"name": f.name, "value": f.value, "action": f.action, "settle_ms": f.settle_ms}
                for f in self.fields
            ],
        }


# =============================================================================
# Email
# =============================================================================

def format_amount(amount: Union[int, float]) -> str:
    """25 -> '25', 25.5 -> '25.50'."""
    text = f"{float(amount):.2f}"
    return text[:-3] if text.endswith(".00") else text


def default_brief_description(request_body: str) -> str:
    """First line of the request, cut to a subject-sized length."""
    first_line = next((line.strip() for line in request_body.splitlines() if line.strip()), "")
    if len(first_line) <= BRIEF_DESCRIPTION_MAX_LENGTH:
        return first_line
    return first_line[:BRIEF_DESCRIPTION_MAX_LENGTH].rstrip() + "..."


def build_email_body(request_body: str, requester: RequesterDetails) -> str:
    """The request letter. The fee waiver block only appears when requested."""
    identity = [
        "REQUESTER INFORMATION:",
        f"Name: {requester.full_name}",
        f"Email: {requester.email}",
    ]
    if requester.phone:
        identity.append(f"Phone: {requester.phone}")
    identity.append(f"Address: {requester.formatted_address}")

    sections = [
        "Dear FOIA Officer,",
        "Pursuant to the Freedom of Information Act, 5 U.S.C. § 552, "
        "I am requesting access to the following records:",
        request_body.strip(),
        "\n".join(identity),
        f"FEE CATEGORY:\n{FEE_CATEGORY_LABELS[requester.fee_category_key]}",
        "FEE LIMITATION:\n"
        f"I am willing to pay up to ${format_amount(requester.max_fee)} for processing fees. "
        "If the estimated cost exceeds this amount, please contact me before proceeding.",
    ]

    if requester.fee_waiver_requested:
        justification = requester.fee_waiver_reason.strip() or DEFAULT_FEE_WAIVER_JUSTIFICATION
        sections.append(
            "FEE WAIVER REQUEST:\n"
            "I am requesting a waiver of all fees associated with this request.\n"
            f"Justification: {justification}"
        )

    sections += [
        "PREFERRED RESPONSE FORMAT:\n"
        "I would prefer to receive records in electronic format (PDF or other common "
        "digital format) sent to my email address if possible.",
        "Thank you for your consideration of this request. "
        "I look forward to your response within the statutory timeframe.",
        f"Sincerely,\n{requester.full_name}\n{requester.email}",
    ]
    return "\n\n".join(sections) + "\n"


def compose_email(
    email_address: str,
    request_body: str,
    requester: RequesterDetails,
    brief_description: str = "",
) -> EmailPayload:
    brief = brief_description.strip() or default_brief_description(request_body)
    return EmailPayload(
        to=email_address,
        subject=f"{SUBJECT_PREFIX}{brief}",
        body=build_email_body(request_body, requester),
        reply_to=requester.email,
        reply_to_name=requester.full_name,
    )


# =============================================================================
# Portal
# =============================================================================

def _contact_fields(requester: RequesterDetails) -> List[PortalField]:
    fields = [
        PortalField(PORTAL_FIELD_FIRST_NAME, requester.first_name),
        PortalField(PORTAL_FIELD_LAST_NAME, requester.last_name),
        PortalField(PORTAL_FIELD_EMAIL, requester.email),
    ]
    if requester.phone:
        fields.append(PortalField(PORTAL_FIELD_PHONE, requester.phone))
    fields.append(PortalField(PORTAL_FIELD_ADDRESS_LINE1, requester.address_line1))
    if requester.address_line2:
        fields.append(PortalField(PORTAL_FIELD_ADDRESS_LINE2, requester.address_line2))
    fields += [
        PortalField(PORTAL_FIELD_CITY, requester.city),
        PortalField(PORTAL_FIELD_ZIP, requester.zip_code),
        PortalField(PORTAL_FIELD_STATE, requester.state),
        PortalField(PORTAL_FIELD_COUNTRY, PORTAL_COUNTRY_UNITED_STATES, ACTION_SELECT),
    ]
    return fields


def _extended_fields(request_body: str, requester: RequesterDetails, today: date) -> List[PortalField]:
    state_index = PORTAL_STATE_INDEX.get(requester.state.strip().upper(), "0")
    return [
        PortalField(PORTAL_FIELD_FBI_ADDRESS_TYPE, FBI_ADDRESS_TYPE_DOMESTIC, ACTION_SELECT, 500),
        PortalField(PORTAL_FIELD_FBI_STATE, state_index, ACTION_SELECT, 300),
        PortalField(PORTAL_FIELD_FBI_REQUEST_SUBJECT, FBI_SUBJECT_ALL_OTHER, ACTION_SELECT, 500),
        PortalField(PORTAL_FIELD_FBI_REQUESTER_TYPE, FBI_REQUESTER_MYSELF, ACTION_SELECT, 500),
        PortalField(PORTAL_FIELD_FBI_DESCRIPTION, request_body),
        PortalField(PORTAL_FIELD_FBI_PERJURY_CONFIRM, FBI_PERJURY_YES, ACTION_SELECT, 300),
        PortalField(PORTAL_FIELD_FBI_SIGNATURE, requester.full_name),
        PortalField(PORTAL_FIELD_FBI_DATE, today.strftime("%m/%d/%Y")),
    ]


def _fee_fields(requester: RequesterDetails) -> List[PortalField]:
    fields = [
        PortalField(
            PORTAL_FIELD_FEE_CATEGORY,
            PORTAL_FEE_CATEGORY_INDEX[requester.fee_category_key],
            ACTION_SELECT,
        ),
    ]
    if requester.fee_waiver_requested:
        fields.append(PortalField(PORTAL_FIELD_FEE_WAIVER, "1", ACTION_SELECT, 500))
        if requester.fee_waiver_reason.strip():
            fields.append(
                PortalField(PORTAL_FIELD_FEE_WAIVER_EXPLANATION, requester.fee_waiver_reason.strip())
            )
    else:
        fields.append(PortalField(PORTAL_FIELD_FEE_WAIVER, "0", ACTION_SELECT))

    fields += [
        PortalField(PORTAL_FIELD_FEE_AMOUNT, format_amount(requester.max_fee)),
        PortalField(PORTAL_FIELD_EXPEDITED, "0", ACTION_SELECT),
    ]
    return fields


def compose_portal_manifest(
    unit_id: str,
    request_body: str,
    requester: RequesterDetails,
    today: Optional[date] = None,
) -> PortalManifest:
    """
    Plan the portal form fill for one unit.

    Order: contact block, then either the extended field set or the plain
    description box, then fees.
    """
    extended = unit_id in EXTENDED_FORM_UNIT_IDS
    fields = _contact_fields(requester)
    if extended:
        fields += _extended_fields(request_body, requester, today or date.today())
    else:
        fields.append(PortalField(PORTAL_FIELD_REQUEST_DESCRIPTION, request_body))
    fields += _fee_fields(requester)

    return PortalManifest(
        unit_id=unit_id,
        portal_url=unit_page_url(unit_id) if unit_id else "",
        extended_form=extended,
        fields=fields,
    )


# =============================================================================
# Entry points
# =============================================================================

def compose(
    channel: Channel,
    record: Optional[CanonicalRecord],
    request_body: str,
    requester: RequesterDetails,
    brief_description: str = "",
    email_address: Optional[str] = None,
    today: Optional[date] = None,
) -> Union[EmailPayload, PortalManifest]:
    """
    Build the payload for a channel.

    Args:
        channel: EMAIL or PORTAL
        record: Resolved directory record (may be None for PORTAL)
        request_body: The records being requested
        requester: Requester identity and fee terms
        brief_description: Subject line text (EMAIL)
        email_address: Recipient; defaults to the record's primary email
        today: Attestation date for the extended form

    Raises:
        CompositionError: EMAIL with no recipient address
    """
    if channel == Channel.EMAIL:
        to = email_address or (record.primary_email if record else "")
        if not to:
            raise CompositionError("EMAIL channel requires an email address")
        return compose_email(to, request_body, requester, brief_description)

    unit_id = record.unit_id if record else ""
    manifest = compose_portal_manifest(unit_id, request_body, requester, today)
    logger.debug(f"Portal manifest for {unit_id or '<unmatched>'}: {len(manifest.fields)} fields")
    return manifest


def compose_for(
    resolution: ResolutionResult,
    request_body: str,
    requester: RequesterDetails,
    brief_description: str = "",
    today: Optional[date] = None,
) -> Union[EmailPayload, PortalManifest]:
    """compose() driven by a ResolutionResult."""
    return compose(
        resolution.channel,
        resolution.record,
        request_body,
        requester,
        brief_description=brief_description,
        email_address=resolution.email_address,
        today=today,
    )
