from eventsite.config.settings import settings

__all__ = ["settings"]
