from __future__ import annotations

import html
from collections.abc import Mapping, Sequence
from pathlib import PurePosixPath
from typing import final
from urllib.parse import urlsplit

from basset_cache.application.manager import AssetManager
from basset_cache.domain.models.asset_reference import AssetType
from basset_cache.domain.models.asset_status import AssetStatus

AttrValue = str | int | bool | None


def render_attributes(attrs: Mapping[str, AttrValue]) -> str:
    rendered: list[str] = []
    for name, value in attrs.items():
        attr = name.rstrip("_").replace("_", "-")
        if value is None or value is False:
            continue
        if value is True:
            rendered.append(f" {attr}")
            continue
        rendered.append(f' {attr}="{html.escape(str(value), quote=True)}"')
    return "".join(rendered)


@final
class AssetTags:
    """Template-facing helpers for one rendered page.

    Create one per page. Script and style references, inline blocks and
    named bundles are emitted at most once per page; repeated calls return
    an empty string.
    """

    def __init__(self, manager: AssetManager) -> None:
        self._manager = manager
        self._emitted: set[str] = set()

    def _first_time(self, marker: str) -> bool:
        if marker in self._emitted:
            return False
        self._emitted.add(marker)
        return True

    def asset(self, ref: str) -> str:
        return html.escape(self._manager.resolve(ref), quote=True)

    def _tag(self, asset_type: AssetType, url: str, attrs: Mapping[str, AttrValue]) -> str:
        src = html.escape(url, quote=True)
        if asset_type is AssetType.SCRIPT:
            return f'<script src="{src}"{render_attributes(attrs)}></script>'
        merged: dict[str, AttrValue] = {"rel": "stylesheet", **attrs}
        return f'<link href="{src}"{render_attributes(merged)}>'

    def script(self, ref: str, **attrs: AttrValue) -> str:
        if not self._first_time(f"script:{ref}"):
            return ""
        return self._tag(AssetType.SCRIPT, self._manager.resolve(ref), attrs)

    def style(self, ref: str, **attrs: AttrValue) -> str:
        if not self._first_time(f"style:{ref}"):
            return ""
        return self._tag(AssetType.STYLE, self._manager.resolve(ref), attrs)

    def basset(self, ref: str, **attrs: AttrValue) -> str:
        """Emit the tag matching the asset's file type, or its bare URL."""
        asset_type = AssetType.from_suffix(PurePosixPath(urlsplit(ref).path).suffix)
        if asset_type is AssetType.SCRIPT:
            return self.script(ref, **attrs)
        if asset_type is AssetType.STYLE:
            return self.style(ref, **attrs)
        return self.asset(ref)

    def block(self, content: str, asset_type: AssetType, **attrs: AttrValue) -> str:
        resolution = self._manager.block(content, asset_type)
        marker = f"block:{resolution.key}" if resolution.key else f"block:{content}"
        if not self._first_time(marker):
            return ""
        if resolution.reference:
            return self._tag(asset_type, resolution.reference, attrs)
        element = "script" if asset_type is AssetType.SCRIPT else "style"
        return f"<{element}{render_attributes(attrs)}>{content}</{element}>"

    def bundle(
        self, name: str, refs: Sequence[str], asset_type: AssetType, **attrs: AttrValue
    ) -> str:
        if not self._first_time(f"bundle:{name}"):
            return ""
        resolution = self._manager.bundle(name, refs, asset_type)
        if resolution.reference and resolution.status not in {
            AssetStatus.FALLBACK,
            AssetStatus.INVALID,
        }:
            return self._tag(asset_type, resolution.reference, attrs)

        emit = self.script if asset_type is AssetType.SCRIPT else self.style
        return "\n".join(tag for tag in (emit(ref, **attrs) for ref in refs) if tag)
