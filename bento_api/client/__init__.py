from bento_api.client.api import ApiError, BentoClient
from bento_api.client.cache import LocalCache, is_data_changed
from bento_api.client.cached_fetch import CachedFetch

__all__ = ["ApiError", "BentoClient", "CachedFetch", "LocalCache", "is_data_changed"]
