"""
Submission Service - Resolve, compose and hand off a FOIA request.

Delivery itself (sending mail, driving the portal form) is done by
collaborators implementing MailDispatcher / PortalDispatcher. This service
never raises on delivery problems: every failure becomes a DeliveryResult
with success=False and a manual-submission instruction.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from constants import MANUAL_FALLBACK_INSTRUCTION
from services.agency_resolver import AgencyResolver, Channel
from services.submission_composer import (
    EmailPayload,
    PortalManifest,
    RequesterDetails,
    compose_for,
)

logger = logging.getLogger(__name__)


class MailDispatcher(ABC):
    """Sends a composed request email."""

    @abstractmethod
    def send(self, payload: EmailPayload) -> None:
        """Deliver payload; raise on failure."""


class PortalDispatcher(ABC):
    """Pre-fills the agency portal form from a manifest."""

    @abstractmethod
    def open(self, manifest: PortalManifest) -> None:
        """Open the portal and apply the manifest; raise on failure."""


@dataclass
class SubmissionRequest:
    request_body: str
    requester: RequesterDetails
    unit_id: Optional[str] = None
    agency_name: Optional[str] = None
    brief_description: str = ""


@dataclass
class DeliveryResult:
    success: bool
    message: str
    channel: Optional[Channel] = None
    tracking_id: Optional[str] = None
    email_sent_to: Optional[str] = None
    portal_url: Optional[str] = None
    manifest: Optional[PortalManifest] = None
    manual_fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "channel": self.channel.value if self.channel else None,
            "tracking_id": self.tracking_id,
            "email_sent_to": self.email_sent_to,
            "portal_url": self.portal_url,
            "manifest": self.manifest.to_dict() if self.manifest else None,
            "manual_fallback": self.manual_fallback,
        }


def new_tracking_id() -> str:
    return f"FOIA-{int(time.time() * 1000)}"


class SubmissionService:
    """
    End-to-end request hand-off.

    Args:
        resolver: AgencyResolver over the canonical directory
        mail_dispatcher: Email sender (EMAIL channel)
        portal_dispatcher: Portal form filler (PORTAL channel)
    """

    def __init__(
        self,
        resolver: AgencyResolver,
        mail_dispatcher: Optional[MailDispatcher] = None,
        portal_dispatcher: Optional[PortalDispatcher] = None,
    ):
        self.resolver = resolver
        self.mail_dispatcher = mail_dispatcher
        self.portal_dispatcher = portal_dispatcher

    def submit(self, request: SubmissionRequest) -> DeliveryResult:
        """
        Resolve the agency and deliver the request on the chosen channel.

        Raises:
            ResolverQueryError: Neither unit_id nor agency_name given
        """
        resolution = self.resolver.resolve(unit_id=request.unit_id, name=request.agency_name)
        agency_label = (
            (resolution.record.name if resolution.record else "")
            or request.agency_name
            or request.unit_id
        )

        payload = compose_for(
            resolution,
            request.request_body,
            request.requester,
            brief_description=request.brief_description,
        )

        if resolution.channel == Channel.EMAIL:
            return self._deliver_email(payload, agency_label, request.requester)
        return self._deliver_portal(payload, agency_label)

    # =========================================================================
    # Channels
    # =========================================================================

    def _deliver_email(
        self,
        payload: EmailPayload,
        agency_label: str,
        requester: RequesterDetails,
    ) -> DeliveryResult:
        if self.mail_dispatcher is None:
            logger.error("Email requested but no mail dispatcher is configured")
            return DeliveryResult(
                success=False,
                message=f"Email service not configured. {MANUAL_FALLBACK_INSTRUCTION}",
                channel=Channel.EMAIL,
                manual_fallback=True,
            )

        try:
            self.mail_dispatcher.send(payload)
        except Exception as e:
            logger.exception(f"Failed to send request email to {payload.to}")
            return DeliveryResult(
                success=False,
                message=f"Failed to send email: {e}. Please try again or submit manually at foia.gov.",
                channel=Channel.EMAIL,
                manual_fallback=True,
            )

        tracking_id = new_tracking_id()
        logger.info(f"Request emailed to {payload.to} ({tracking_id})")
        return DeliveryResult(
            success=True,
            message=(
                f"Your FOIA request has been emailed to {agency_label}! "
                f"They will respond to {requester.email}."
            ),
            channel=Channel.EMAIL,
            tracking_id=tracking_id,
            email_sent_to=payload.to,
        )

    def _deliver_portal(self, manifest: PortalManifest, agency_label: str) -> DeliveryResult:
        portal_url = manifest.portal_url or None

        if self.portal_dispatcher is None or not manifest.unit_id:
            return DeliveryResult(
                success=False,
                message=f"No email address found for {agency_label}. {MANUAL_FALLBACK_INSTRUCTION}",
                channel=Channel.PORTAL,
                portal_url=portal_url,
                manifest=manifest,
                manual_fallback=True,
            )

        try:
            self.portal_dispatcher.open(manifest)
        except Exception as e:
            logger.exception(f"Failed to open portal for {manifest.unit_id}")
            return DeliveryResult(
                success=False,
                message=f"Failed to open portal: {e}. {MANUAL_FALLBACK_INSTRUCTION}",
                channel=Channel.PORTAL,
                portal_url=portal_url,
                manifest=manifest,
                manual_fallback=True,
            )

        return DeliveryResult(
            success=True,
            message="Browser opened and form pre-filled. Complete the CAPTCHA and click Submit.",
            channel=Channel.PORTAL,
            portal_url=portal_url,
            manifest=manifest,
        )
