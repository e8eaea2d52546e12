from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import override

from basset_cache.domain.models.asset_reference import AssetReference


def _feed(digest: hashlib.blake2b, reference: AssetReference) -> None:
    for part in (reference.kind.value, reference.source, reference.suffix):
        digest.update(part.encode("utf-8"))
        digest.update(b"\x00")
    for member in reference.members:
        digest.update(b"member\x00")
        _feed(digest, member)


@dataclass(frozen=True, slots=True)
class AssetKey:
    digest: str
    suffix: str

    @classmethod
    def derive(cls, reference: AssetReference, minify: bool) -> AssetKey:
        digest = hashlib.blake2b(digest_size=16)
        _feed(digest, reference)
        digest.update(b"minify=1" if minify else b"minify=0")
        return cls(digest.hexdigest(), reference.suffix)

    @override
    def __str__(self) -> str:
        return self.digest
