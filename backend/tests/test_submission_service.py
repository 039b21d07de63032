"""Tests for request delivery hand-off."""

import pytest
from unittest.mock import Mock

from services.agency_resolver import AgencyResolver, Channel, ResolverQueryError
from services.submission_composer import EmailPayload, PortalManifest, RequesterDetails
from services.submission_service import (
    DeliveryResult,
    MailDispatcher,
    PortalDispatcher,
    SubmissionRequest,
    SubmissionService,
)


class RecordingMail(MailDispatcher):
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def send(self, payload):
        if self.error:
            raise self.error
        self.sent.append(payload)


class RecordingPortal(PortalDispatcher):
    def __init__(self, error=None):
        self.opened = []
        self.error = error

    def open(self, manifest):
        if self.error:
            raise self.error
        self.opened.append(manifest)


@pytest.fixture
def requester():
    return RequesterDetails(
        first_name="Grace",
        last_name="Hopper",
        email="grace@example.com",
        address_line1="1 Navy Yard",
        city="Arlington",
        state="VA",
        zip_code="22202",
    )


@pytest.fixture
def resolver(make_canonical):
    records = [
        make_canonical("mail", name="Mail Unit", emails=["foia@mail.gov"]),
        make_canonical("portal", name="Portal Unit"),
    ]
    return AgencyResolver(lambda: records)


def make_request(requester, **kwargs):
    return SubmissionRequest(request_body="Records about COBOL.", requester=requester, **kwargs)


class TestEmailDelivery:

    def test_success(self, resolver, requester):
        mail = RecordingMail()
        service = SubmissionService(resolver, mail_dispatcher=mail)

        result = service.submit(make_request(requester, unit_id="mail", brief_description="COBOL"))

        assert result.success
        assert result.channel == Channel.EMAIL
        assert result.email_sent_to == "foia@mail.gov"
        assert result.tracking_id.startswith("FOIA-")
        assert result.message == (
            "Your FOIA request has been emailed to Mail Unit! They will respond to grace@example.com."
        )
        assert isinstance(mail.sent[0], EmailPayload)
        assert mail.sent[0].subject == "FOIA Request - COBOL"

    def test_dispatcher_failure_is_result_not_exception(self, resolver, requester):
        service = SubmissionService(resolver, mail_dispatcher=RecordingMail(error=RuntimeError("SMTP down")))

        result = service.submit(make_request(requester, unit_id="mail"))

        assert not result.success
        assert result.manual_fallback
        assert result.message == (
            "Failed to send email: SMTP down. Please try again or submit manually at foia.gov."
        )

    def test_no_mail_dispatcher(self, resolver, requester):
        result = SubmissionService(resolver).submit(make_request(requester, unit_id="mail"))

        assert not result.success
        assert result.manual_fallback
        assert "foia.gov" in result.message


class TestPortalDelivery:

    def test_no_email_without_portal_dispatcher(self, resolver, requester):
        result = SubmissionService(resolver, mail_dispatcher=RecordingMail()).submit(
            make_request(requester, agency_name="Portal Unit")
        )

        assert not result.success
        assert result.channel == Channel.PORTAL
        assert result.message == (
            "No email address found for Portal Unit. Please submit your request manually at foia.gov."
        )
        assert isinstance(result.manifest, PortalManifest)
        assert result.portal_url.endswith("/portal/")

    def test_portal_dispatcher_success(self, resolver, requester):
        portal = RecordingPortal()
        result = SubmissionService(resolver, portal_dispatcher=portal).submit(
            make_request(requester, unit_id="portal")
        )

        assert result.success
        assert portal.opened[0].unit_id == "portal"
        assert "CAPTCHA" in result.message

    def test_portal_dispatcher_failure(self, resolver, requester):
        portal = RecordingPortal(error=RuntimeError("browser crashed"))
        result = SubmissionService(resolver, portal_dispatcher=portal).submit(
            make_request(requester, unit_id="portal")
        )

        assert not result.success
        assert result.manual_fallback
        assert "browser crashed" in result.message

    def test_unmatched_agency_never_opens_portal(self, resolver, requester):
        portal = RecordingPortal()
        result = SubmissionService(resolver, portal_dispatcher=portal).submit(
            make_request(requester, agency_name="Unknown Commission")
        )

        assert not result.success
        assert portal.opened == []
        assert "Unknown Commission" in result.message
        assert result.portal_url is None


def test_missing_query_propagates(resolver, requester):
    with pytest.raises(ResolverQueryError):
        SubmissionService(resolver).submit(make_request(requester))


def test_delivery_result_to_dict():
    manifest = PortalManifest(unit_id="u", portal_url="https://x", extended_form=False)
    data = DeliveryResult(success=False, message="m", channel=Channel.PORTAL, manifest=manifest).to_dict()
    assert data["channel"] == "portal"
    assert data["manifest"]["unit_id"] == "u"


def test_dispatchers_are_abstract():
    with pytest.raises(TypeError):
        MailDispatcher()
    with pytest.raises(TypeError):
        PortalDispatcher()
    assert Mock(spec=MailDispatcher).send
