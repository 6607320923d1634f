import logging
from typing import Optional

from eventsite.config.site_config import HOME_PAGE, PAGE_ORDER
from eventsite.modules.site_settings.cache import PageSettingsCache
from eventsite.modules.site_settings.schemas import PageSettings

logger = logging.getLogger(__name__)

FORWARD = "forward"
BACKWARD = "backward"

# Swipe left shows the next page, swipe right the previous one
_DIRECTION_ALIASES = {
    "forward": FORWARD,
    "next": FORWARD,
    "left": FORWARD,
    "backward": BACKWARD,
    "previous": BACKWARD,
    "right": BACKWARD,
}


def normalize_direction(direction: str) -> str:
    try:
        return _DIRECTION_ALIASES[direction.lower()]
    except KeyError:
        raise ValueError(f"Unknown navigation direction: {direction}")


def _page_path(page: str, project_slug: Optional[str]) -> str:
    if not project_slug:
        return page
    if page == HOME_PAGE:
        return f"/{project_slug}"
    return f"/{project_slug}{page}"


def _strip_slug(current_page: str, project_slug: Optional[str]) -> str:
    if not project_slug:
        return current_page
    prefix = f"/{project_slug}"
    if current_page in (prefix, prefix + "/"):
        return HOME_PAGE
    if current_page.startswith(prefix + "/"):
        return current_page[len(prefix):]
    return current_page


def _is_enabled(page: str, page_settings: PageSettings) -> bool:
    if page == HOME_PAGE:
        return True
    return page_settings.is_enabled(page.lstrip("/"))


def next_enabled_page(
    current_page: str,
    direction: str,
    page_settings: PageSettings,
    project_slug: Optional[str] = None,
) -> str:
    """Nearest enabled page from current_page in the given direction.

    No wraparound: when nothing enabled lies that way, or current_page is not
    one of the site pages, current_page is returned unchanged.
    """
    step = 1 if normalize_direction(direction) == FORWARD else -1
    page = _strip_slug(current_page, project_slug)
    if page not in PAGE_ORDER:
        logger.debug(f"Page {current_page} is not in the page order; staying in place")
        return current_page

    index = PAGE_ORDER.index(page) + step
    while 0 <= index < len(PAGE_ORDER):
        candidate = PAGE_ORDER[index]
        if _is_enabled(candidate, page_settings):
            return _page_path(candidate, project_slug)
        index += step
    return current_page


class NavigationService:
    def __init__(self, page_settings_cache: PageSettingsCache):
        self.page_settings_cache = page_settings_cache

    async def next_enabled_page(
        self,
        current_page: str,
        direction: str,
        project_slug: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> str:
        page_settings = await self.page_settings_cache.get(project_id)
        return next_enabled_page(current_page, direction, page_settings, project_slug)
