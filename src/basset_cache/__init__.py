from basset_cache.application.manager import AssetManager
from basset_cache.application.directives import AssetTags

__all__ = ["AssetManager", "AssetTags"]
__version__ = "0.1.0"
