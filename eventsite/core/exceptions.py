"""Domain errors raised by services; mapped to HTTP responses in main.py"""


class EventSiteError(Exception):
    """Base class for errors raised by the event-site services"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ProjectNotFoundError(EventSiteError):
    """The project slug resolves to no project"""

    def __init__(self, slug: str):
        super().__init__(f"Project not found: {slug}")
        self.slug = slug


class NotAuthorizedError(EventSiteError):
    """Caller is not a member of the project or their role is insufficient"""


class TransientFetchError(EventSiteError):
    """Backend or network failure while talking to Supabase"""


class ParseFailureError(EventSiteError):
    """A stored setting value could not be decoded"""

    def __init__(self, key: str, reason: str = ""):
        super().__init__(f"Malformed value for setting '{key}': {reason}")
        self.key = key
