from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import ClassVar, final


@final
class TemplateScanner:
    """Finds literal asset references in template files.

    Only string literals passed straight to ``asset``, ``script``, ``style``
    or ``basset`` are collected; references built at render time cannot be
    known ahead of a request and are left to the first render.
    """

    _CALL_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"\b(?:asset|script|style|basset)\(\s*(['\"])(?P<ref>[^'\"\n]+?)\1"
    )
    _TEMPLATE_SUFFIXES: ClassVar[frozenset[str]] = frozenset(
        {".html", ".htm", ".jinja", ".jinja2", ".j2", ".php", ".twig"}
    )
    _DYNAMIC_MARKERS: ClassVar[tuple[str, ...]] = ("{{", "{%", "$")

    def __init__(self, view_paths: Iterable[Path], logger: logging.Logger) -> None:
        self._view_paths = tuple(view_paths)
        self._logger = logger

    def template_files(self) -> list[Path]:
        files: set[Path] = set()
        for root in self._view_paths:
            if not root.is_dir():
                self._logger.debug("View path not found, skipping: %s", root)
                continue
            for path in root.rglob("*"):
                if path.is_file() and path.suffix.lower() in self._TEMPLATE_SUFFIXES:
                    files.add(path)
        return sorted(files)

    @classmethod
    def references_in(cls, text: str) -> list[str]:
        found: list[str] = []
        for match in cls._CALL_RE.finditer(text):
            ref = match.group("ref").strip()
            if not ref or any(marker in ref for marker in cls._DYNAMIC_MARKERS):
                continue
            found.append(ref)
        return found

    def scan(self) -> list[str]:
        seen: set[str] = set()
        references: list[str] = []
        for path in self.template_files():
            try:
                text = path.read_text("utf-8", errors="replace")
            except OSError as exc:
                self._logger.warning("Unable to read template %s: %s", path, exc)
                continue
            for ref in self.references_in(text):
                if ref in seen:
                    continue
                seen.add(ref)
                references.append(ref)

        self._logger.debug("Template scan found %d asset references", len(references))
        return references
