"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Everything coupled to foia.gov (URLs, DOM selectors, portal field ids,
dropdown index values) is defined here and imported elsewhere.

DO NOT duplicate these definitions in other files.
"""

# =============================================================================
# REGISTRY AND UNIT PAGES
# =============================================================================

REGISTRY_DOMAIN = 'api.foia.gov'
REGISTRY_COMPONENTS_PATH = '/agency_components'

UNIT_PAGE_DOMAIN = 'www.foia.gov'
UNIT_PAGE_URL_TEMPLATE = 'https://www.foia.gov/request/agency-component/{unit_id}/'

# The portal's own intake mailbox. It shows up on nearly every unit page and
# must never be treated as a unit's contact address.
SHARED_INTAKE_ADDRESS = 'National.FOIAPortal@usdoj.gov'
SHARED_INTAKE_MAILBOX = 'national.foiaportal'

# Page chrome heading that is not a unit name
GENERIC_PAGE_HEADINGS = frozenset({'foia.gov'})

# Optional tab that exposes the unit's contact block
REVEAL_TAB_SELECTOR = 'text="Agency information"'
HEADING_SELECTOR = 'h1'
MAILTO_SELECTOR = 'a[href^="mailto:"]'

SCRAPER_USER_AGENT = (
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)


def unit_page_url(unit_id: str) -> str:
    """Public request page for a unit."""
    return UNIT_PAGE_URL_TEMPLATE.format(unit_id=unit_id)


# =============================================================================
# SUBMISSION
# =============================================================================

MANUAL_FALLBACK_INSTRUCTION = 'Please submit your request manually at foia.gov.'

FEE_CATEGORY_LABELS = {
    'commercial': 'Commercial use requester',
    'educational': 'Educational institution',
    'news_media': 'Representative of the news media',
    'other': 'All other requesters',
}

DEFAULT_FEE_CATEGORY = 'other'

DEFAULT_FEE_WAIVER_JUSTIFICATION = (
    'Information will contribute significantly to public understanding.'
)

# Portal dropdown values:
# 0 = news media, 1 = educational, 2 = non-commercial scientific,
# 3 = commercial, 4 = all other
PORTAL_FEE_CATEGORY_INDEX = {
    'commercial': '3',
    'educational': '1',
    'news_media': '0',
    'other': '4',
}

PORTAL_COUNTRY_UNITED_STATES = '246'

# Units whose portal form swaps the plain description box for an extended
# field set behind sequential dependent reveals (FBI).
FBI_UNIT_ID = 'e366935f-20e1-4404-ac40-ed5518a5ce5a'
EXTENDED_FORM_UNIT_IDS = frozenset({FBI_UNIT_ID})

# Index values of the extended form's state dropdown
PORTAL_STATE_INDEX = {
    'AL': '0', 'AK': '1', 'AZ': '2', 'AR': '3', 'CA': '4', 'CO': '5', 'CT': '6', 'DE': '7',
    'DC': '8', 'FL': '9', 'GA': '10', 'HI': '11', 'ID': '12', 'IL': '13', 'IN': '14', 'IA': '15',
    'KS': '16', 'KY': '17', 'LA': '18', 'ME': '19', 'MD': '20', 'MA': '21', 'MI': '22', 'MN': '23',
    'MS': '24', 'MO': '25', 'MT': '26', 'NE': '27', 'NV': '28', 'NH': '29', 'NJ': '30', 'NM': '31',
    'NY': '32', 'NC': '33', 'ND': '34', 'OH': '35', 'OK': '36', 'OR': '37', 'PA': '38', 'RI': '39',
    'SC': '40', 'SD': '41', 'TN': '42', 'TX': '43', 'UT': '44', 'VT': '45', 'VA': '46', 'WA': '47',
    'WV': '48', 'WI': '49', 'WY': '50',
}

# =============================================================================
# PORTAL FORM FIELD IDS (the DOM id of each input, without '#')
# =============================================================================

PORTAL_FIELD_FIRST_NAME = 'root_requester_contact_name_first'
PORTAL_FIELD_LAST_NAME = 'root_requester_contact_name_last'
PORTAL_FIELD_EMAIL = 'root_requester_contact_email'
PORTAL_FIELD_PHONE = 'root_requester_contact_phone_number'
PORTAL_FIELD_ADDRESS_LINE1 = 'root_requester_contact_address_line1'
PORTAL_FIELD_ADDRESS_LINE2 = 'root_requester_contact_address_line2'
PORTAL_FIELD_CITY = 'root_requester_contact_address_city'
PORTAL_FIELD_ZIP = 'root_requester_contact_address_zip_postal_code'
PORTAL_FIELD_STATE = 'root_requester_contact_address_state_province'
PORTAL_FIELD_COUNTRY = 'root_requester_contact_address_country'

PORTAL_FIELD_REQUEST_DESCRIPTION = 'root_request_description_request_description'

PORTAL_FIELD_FEE_CATEGORY = 'root_processing_fees_request_category'
PORTAL_FIELD_FEE_WAIVER = 'root_processing_fees_fee_waiver'
PORTAL_FIELD_FEE_WAIVER_EXPLANATION = 'root_processing_fees_fee_waiver_explanation'
PORTAL_FIELD_FEE_AMOUNT = 'root_processing_fees_fee_amount_willing'
PORTAL_FIELD_EXPEDITED = 'root_expedited_processing_expedited_processing'

# Extended (FBI) form; each select reveals the next field
PORTAL_FIELD_FBI_ADDRESS_TYPE = 'root_supporting_docs_fbi_address_type'
PORTAL_FIELD_FBI_STATE = 'root_supporting_docs_fbi_state_domestic'
PORTAL_FIELD_FBI_REQUEST_SUBJECT = 'root_supporting_docs_fbi_request_subject'
PORTAL_FIELD_FBI_REQUESTER_TYPE = 'root_supporting_docs_fbi_requester_type'
PORTAL_FIELD_FBI_DESCRIPTION = 'root_supporting_docs_fbi_request_description'
PORTAL_FIELD_FBI_PERJURY_CONFIRM = 'root_supporting_docs_fbi_citizen_confirm'
PORTAL_FIELD_FBI_SIGNATURE = 'root_supporting_docs_fbi_citizen_signature'
PORTAL_FIELD_FBI_DATE = 'root_supporting_docs_fbi_citizen_today'

# Extended form option values
FBI_ADDRESS_TYPE_DOMESTIC = '0'
FBI_SUBJECT_ALL_OTHER = '2'
FBI_REQUESTER_MYSELF = '0'
FBI_PERJURY_YES = '0'
