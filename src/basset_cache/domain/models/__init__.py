from basset_cache.domain.models.app_config import AppConfig, RuntimePaths
from basset_cache.domain.models.asset_key import AssetKey
from basset_cache.domain.models.asset_reference import AssetKind, AssetReference, AssetType
from basset_cache.domain.models.asset_status import AssetStatus
from basset_cache.domain.models.cache_entry import CacheEntry
from basset_cache.domain.models.loader_stats import LoaderStats
from basset_cache.domain.models.results import CheckReport, Resolution, WarmResult

__all__ = [
    "AppConfig",
    "AssetKey",
    "AssetKind",
    "AssetReference",
    "AssetStatus",
    "AssetType",
    "CacheEntry",
    "CheckReport",
    "LoaderStats",
    "Resolution",
    "RuntimePaths",
    "WarmResult",
]
