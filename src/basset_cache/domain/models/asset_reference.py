from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit


class AssetKind(StrEnum):
    REMOTE = "remote"
    LOCAL = "local"
    INLINE = "inline"
    BUNDLE = "bundle"


class AssetType(StrEnum):
    SCRIPT = "script"
    STYLE = "style"

    @property
    def suffix(self) -> str:
        return ".js" if self is AssetType.SCRIPT else ".css"

    @classmethod
    def from_suffix(cls, suffix: str) -> AssetType | None:
        normalized = str(suffix or "").strip().lower()
        if normalized in {".js", ".mjs"}:
            return cls.SCRIPT
        if normalized == ".css":
            return cls.STYLE
        return None


@dataclass(frozen=True, slots=True)
class AssetReference:
    kind: AssetKind
    source: str
    original: str
    suffix: str
    members: tuple[AssetReference, ...] = ()

    @classmethod
    def parse(cls, raw: str, asset_root: Path) -> AssetReference:
        text = str(raw or "").strip()
        if not text:
            raise ValueError("Asset reference is empty")

        url = f"https:{text}" if text.startswith("//") else text
        if url.lower().startswith(("http://", "https://")):
            parsed = urlsplit(url)
            if not parsed.netloc:
                raise ValueError(f"Asset URL has no host: {raw!r}")
            suffix = PurePosixPath(parsed.path).suffix.lower()
            return cls(AssetKind.REMOTE, url, text, suffix)

        path = Path(text)
        if not path.is_absolute():
            path = asset_root / path
        resolved = path.resolve()
        return cls(AssetKind.LOCAL, str(resolved), text, resolved.suffix.lower())

    @classmethod
    def inline(cls, content: str, asset_type: AssetType) -> AssetReference:
        return cls(AssetKind.INLINE, str(content or ""), "", asset_type.suffix)

    @classmethod
    def bundle(
        cls, name: str, members: tuple[AssetReference, ...], asset_type: AssetType
    ) -> AssetReference:
        if not members:
            raise ValueError(f"Bundle {name!r} has no members")
        return cls(AssetKind.BUNDLE, name, name, asset_type.suffix, members)

    @property
    def is_remote(self) -> bool:
        return self.kind is AssetKind.REMOTE

    @property
    def asset_type(self) -> AssetType | None:
        return AssetType.from_suffix(self.suffix)
