"""
Site Layout Configuration
Defines the fixed page layout of the public event site, the feature-flag keys
gating each page, project roles and the sortable editor panels.
Used by the access, navigation, settings and editor modules.
"""

# Canonical public page order; "/" (home) is always enabled
PAGE_ORDER = ["/", "/program", "/registration", "/location"]

HOME_PAGE = "/"

# Pages that can be switched off, mapped to their site_settings flag key
PAGE_FLAG_KEYS = {
    "program": "program_enabled",
    "registration": "registration_enabled",
    "location": "location_enabled",
}

# Key prefix -> category. Checked in order, first match wins.
CATEGORY_PREFIXES = [
    ("hero_", "home"),
    ("description_", "home"),
    ("home_", "home"),
    ("section_", "home"),
    ("program_", "program"),
    ("location_", "location"),
    ("transport_card_", "location"),
    ("registration_", "registration"),
]

DEFAULT_CATEGORY = "general"

# Project whose settings seed every new project
TEMPLATE_PROJECT_SLUG = "default"

# Global staff roles (user_roles table), distinct from project roles
STAFF_ROLES = ["master", "mnc_admin", "project_staff"]

# Staff roles allowed to create and delete projects and approve sign-ups
PROJECT_MANAGER_ROLES = ["master", "mnc_admin"]

# Staff roles allowed to grant and revoke staff roles
STAFF_ADMIN_ROLES = ["master"]

# Sortable editor panels: each is one ordered collection persisted as a
# single JSON setting
PANELS = {
    "program_cards": {
        "category": "program",
        "key": "program_cards",
        "description": "Program schedule cards",
        "new_item": {"time": "", "title": "", "description": "", "icon": "Clock"},
    },
    "info_cards": {
        "category": "home",
        "key": "home_info_cards",
        "description": "Home page info cards",
        "new_item": {"icon": "Info", "title": "New card", "description": ""},
    },
    "transport_cards": {
        "category": "location",
        "key": "location_transport_cards",
        "description": "Location page transport cards",
        "new_item": {"icon": "Train", "title": "New transport", "description": "Enter a description"},
    },
    "bottom_buttons": {
        "category": "home",
        "key": "home_bottom_buttons",
        "description": "Home page bottom buttons",
        "new_item": {
            "text": "New button",
            "link": "/",
            "link_type": "internal",
            "variant": "outline",
            "size": "default",
            "font_size": "text-sm",
        },
    },
    "location_buttons": {
        "category": "location",
        "key": "location_bottom_buttons",
        "description": "Location page bottom buttons",
        "new_item": {
            "text": "New button",
            "link": "/",
            "link_type": "internal",
            "variant": "outline",
            "size": "default",
            "font_size": "text-sm",
        },
    },
    "download_files": {
        "category": "location",
        "key": "location_download_files",
        "description": "Location page downloadable files",
        "new_item": {"name": "", "url": ""},
    },
    "form_fields": {
        "category": "registration",
        "key": "registration_fields",
        "description": "Registration form fields",
        "new_item": {
            "label": "New field",
            "placeholder": "",
            "type": "text",
            "required": False,
            "icon": "FileText",
        },
    },
}

# Fields shown on a fresh registration form
DEFAULT_REGISTRATION_FIELDS = [
    {"id": "name", "label": "Name", "placeholder": "Jane Doe", "type": "text", "required": True, "icon": "User"},
    {"id": "company", "label": "Organization", "placeholder": "Organization name", "type": "text", "required": True, "icon": "Building"},
    {"id": "department", "label": "Department", "placeholder": "Department", "type": "text", "required": False, "icon": "Briefcase"},
    {"id": "position", "label": "Position", "placeholder": "Title / rank", "type": "text", "required": True, "icon": "Award"},
    {"id": "phone", "label": "Mobile", "placeholder": "010-0000-0000", "type": "tel", "required": True, "icon": "Smartphone"},
    {"id": "email", "label": "Email", "placeholder": "example@company.com", "type": "email", "required": True, "icon": "Mail"},
]


def get_panel_config(panel: str):
    """Return the panel definition or None when the panel name is unknown"""
    return PANELS.get(panel)
