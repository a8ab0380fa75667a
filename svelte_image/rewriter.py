"""High-level orchestration for rewriting image references in components."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

from .backend import PillowBackend
from .classify import NodeRole, classify
from .config import ImageOptions
from .errors import BackendProcessingError, DocumentParseError, EditConflictError, SkipReason
from .formatting import component_attributes
from .images import download_image
from .markup import collect_candidates, has_image_markers, line_of, parse
from .models import Attribute, EditOperation, Node, ResolvedPath, Skip, StaticValue
from .patcher import apply_edits, sort_edits
from .paths import Downloader, resolve_source
from .placeholders import build_placeholder
from .variants import generate_variants, optimize_single

logger = logging.getLogger("svelte_image")


class ImageRewriter:
    """Rewrites ``<img>`` tags and image components in component source."""

    def __init__(
        self,
        options: Optional[ImageOptions] = None,
        backend: Optional[PillowBackend] = None,
        placeholder=None,
        downloader: Downloader = download_image,
    ) -> None:
        self.options = options or ImageOptions()
        self.backend = backend or PillowBackend()
        self.placeholder = placeholder or build_placeholder(self.options, self.backend)
        self.downloader = downloader

    def rewrite(self, source: str, filename: Optional[str] = None) -> str:
        """Synchronous entry point; must not be called from a running loop."""
        return asyncio.run(self.rewrite_async(source, filename))

    async def rewrite_async(self, source: str, filename: Optional[str] = None) -> str:
        parent_dir = Path(filename).parent if filename else Path(".")
        return await self.replace_images(source, parent_dir)

    def markup(self, content: str, filename: Optional[str] = None) -> Dict[str, str]:
        """Preprocessor-shaped wrapper returning ``{"code": ...}``."""
        return {"code": self.rewrite(content, filename)}

    def in_source_tree(self, parent_dir: Path) -> bool:
        source_root = Path(self.options.source_dir).resolve()
        try:
            relative = Path(parent_dir).resolve().relative_to(source_root)
        except ValueError:
            return False
        return "node_modules" not in relative.parts

    async def replace_images(self, content: str, parent_dir: Union[str, Path]) -> str:
        """Return ``content`` with every eligible image reference optimized."""
        started = time.perf_counter()
        parent = Path(parent_dir).resolve()

        if not has_image_markers(content, self.options.tag_name):
            return content
        if not self.in_source_tree(parent):
            logger.debug("Skipping %s: outside %s", parent, self.options.source_dir)
            return content

        try:
            document = parse(content, self.options.tag_name)
        except DocumentParseError as exc:
            logger.error("Error parsing component content in %s: %s", parent, exc)
            return content
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error parsing component content in %s", parent)
            return content

        nodes = collect_candidates(document.root, self.options.tag_name)
        if not nodes:
            return content

        per_node = await asyncio.gather(
            *(self._process_node(node, parent, content) for node in nodes)
        )
        edits = sort_edits(edit for node_edits in per_node for edit in node_edits)
        if not edits:
            return content

        try:
            rewritten = apply_edits(content, edits)
        except EditConflictError as exc:
            logger.error("Discarding edits for %s: %s", parent, exc)
            return content
        logger.info(
            "Rewrote %d of %d image node(s) in %s (%.2fs)",
            sum(1 for node_edits in per_node if node_edits),
            len(nodes),
            parent,
            time.perf_counter() - started,
        )
        return rewritten

    async def _process_node(self, node: Node, parent_dir: Path, text: str) -> List[EditOperation]:
        line = line_of(text, node.start)
        classification = classify(node, self.options)
        if not classification.eligible:
            logger.info(
                "Skipping <%s> on line %d: %s: %s",
                node.name,
                line,
                SkipReason.NOT_ELIGIBLE,
                classification.reason,
            )
            return []

        src = node.attribute("src")
        try:
            decision = await asyncio.to_thread(
                resolve_source,
                src.value if src else None,
                parent_dir,
                self.options,
                classification.extensions,
                self.downloader,
            )
            if isinstance(decision, Skip):
                logger.info("Skipping <%s> on line %d: %s", node.name, line, decision.describe())
                return []
            if classification.role is NodeRole.IMG_TAG:
                return await self._img_edits(src, decision.resolved)
            return await self._component_edits(src, decision.resolved)
        except BackendProcessingError as exc:
            logger.warning(
                "Skipping <%s> on line %d: %s: %s", node.name, line, SkipReason.BACKEND_FAILED, exc
            )
            return []
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error processing <%s> on line %d", node.name, line)
            return []

    async def _img_edits(self, src: Attribute, resolved: ResolvedPath) -> List[EditOperation]:
        value = _static(src)
        uri = await optimize_single(resolved, self.options, self.backend)
        return [EditOperation(value.start, value.end, uri)]

    async def _component_edits(
        self, src: Attribute, resolved: ResolvedPath
    ) -> List[EditOperation]:
        value = _static(src)
        variants = await generate_variants(resolved, self.options, self.backend)
        if not variants:
            raise BackendProcessingError(f"No variants produced for {resolved.in_path}")
        placeholder = await asyncio.to_thread(self.placeholder.render, resolved.in_path)
        alt_extension = self.options.alt_format_options.extension if self.options.alt_format else ""
        extra = component_attributes(variants, self.options.breakpoints, alt_extension)
        return [
            EditOperation(value.start, value.end, placeholder),
            EditOperation(src.end, src.end, extra),
        ]


def _static(src: Optional[Attribute]) -> StaticValue:
    if src is None or not isinstance(src.value, StaticValue):
        raise BackendProcessingError("Only a literal src value can be rewritten")
    return src.value
