from basset_cache.domain.protocols.artifact_store_port import ArtifactStorePort
from basset_cache.domain.protocols.cache_map_port import CacheMapPort
from basset_cache.domain.protocols.disk_port import DiskPort
from basset_cache.domain.protocols.source_fetcher_port import SourceFetcherPort
from basset_cache.domain.protocols.transformer_port import TransformerPort

__all__ = [
    "ArtifactStorePort",
    "CacheMapPort",
    "DiskPort",
    "SourceFetcherPort",
    "TransformerPort",
]
