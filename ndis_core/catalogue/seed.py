# ndis_core/catalogue/seed.py
"""
Versioned seed configuration for the global support catalogue and the
per-company default audit domains. Pure data; loaded by CatalogueService.
"""

CATALOGUE_VERSION = "seed-v1"

CATEGORIES = [
    {"category_key": "CORE", "category_label": "Core Supports", "sort_order": 1},
    {"category_key": "CAPACITY_BUILDING", "category_label": "Capacity Building", "sort_order": 2},
    {"category_key": "BEHAVIOUR_SUPPORT", "category_label": "Behaviour Support", "sort_order": 3},
    {"category_key": "THERAPIES", "category_label": "Therapies", "sort_order": 4},
    {"category_key": "AT", "category_label": "Assistive Technology", "sort_order": 5},
]

_IDL = "Capacity Building (Improved Daily Living)"

LINE_ITEMS = {
    "CORE": [
        ("0120", "Participate Community", "Core"),
        ("0117", "Household Tasks", "Core"),
        ("0107", "Assist Travel / Transport / Transition", "Core"),
        ("0106", "Assist Life Stage Transition", "Core"),
        ("0115", "Daily Personal Activities", "Core"),
        ("0116", "Assistance with Self-Care Activities", "Core"),
        ("0125", "Innovative Community Participation", "Core"),
    ],
    "CAPACITY_BUILDING": [
        ("0108", "Development Life Skills", "Capacity Building"),
        ("0109", "Increased Social & Community Participation", "Capacity Building"),
        ("0118", "Employment Support", "Capacity Building"),
        ("0132", "Support Coordination", "Capacity Building"),
        ("0136", "Plan Management", "Capacity Building"),
        ("0127", "Improved Living Arrangements", "Capacity Building"),
    ],
    "BEHAVIOUR_SUPPORT": [
        ("0110", "Specialist Positive Behaviour Support", "Capacity Building"),
        ("0110-001", "Behaviour Management Plan Development", "Capacity Building"),
        ("0110-002", "Behaviour Support Training", "Capacity Building"),
        ("0110-003", "Restrictive Practice Reporting", "Capacity Building"),
        ("0110-004", "Behaviour Crisis Intervention", "Capacity Building"),
    ],
    "THERAPIES": [
        ("0128-001", "Speech Pathology Assessment", _IDL),
        ("0128-002", "Speech Pathology Therapy", _IDL),
        ("0128-003", "Occupational Therapy Assessment", _IDL),
        ("0128-004", "Occupational Therapy", _IDL),
        ("0128-005", "Physiotherapy Assessment", _IDL),
        ("0128-006", "Physiotherapy", _IDL),
        ("0128-007", "Psychology Assessment", _IDL),
        ("0128-008", "Psychology Sessions", _IDL),
    ],
    "AT": [
        ("0300-001", "Low Cost AT", "Capital/Consumables"),
        ("0300-002", "Assistive Technology – Assessment / Advice", "Capital"),
        ("0300-003", "Assistive Technology – Training", "Capacity Building"),
        ("0300-004", "Consumables – AT related", "Capital/Consumables"),
        ("0300-005", "Vehicle Modifications", "Capital"),
        ("0300-006", "Home Modifications", "Capital"),
    ],
}

DEFAULT_AUDIT_DOMAINS = [
    {
        "code": "GOV_POLICY",
        "name": "Governance & Policy",
        "description": "Organisational governance, policies and procedures, risk management",
        "is_enabled_by_default": True,
    },
    {
        "code": "STAFF_PERSONNEL",
        "name": "Staff & Personnel Compliance",
        "description": "Worker screening, qualifications, training records and supervision",
        "is_enabled_by_default": True,
    },
    {
        "code": "OPERATIONAL",
        "name": "Operational / Service Delivery",
        "description": "Participant records, service agreements, care plans and incident management",
        "is_enabled_by_default": True,
    },
    {
        "code": "SITE_ENVIRONMENT",
        "name": "Site-Specific & Environment",
        "description": "Physical environment, safety checks and site-specific requirements",
        "is_enabled_by_default": True,
    },
]
