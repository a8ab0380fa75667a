"""Decide which markup nodes are eligible for optimization."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .config import ImageOptions
from .models import Node, StaticValue
from .utils import has_allowed_extension


class NodeRole(str, Enum):
    IMG_TAG = "img"
    COMPONENT = "component"


@dataclass(frozen=True)
class Classification:
    """Eligibility of a node plus the allow-list that applies to it."""

    eligible: bool
    role: Optional[NodeRole] = None
    extensions: Tuple[str, ...] = ()
    reason: str = ""


def classify(node: Node, options: ImageOptions) -> Classification:
    """Apply the ``<img>`` and component gates to ``node``."""
    if node.name == "img" and options.optimize_all:
        return _check_extension(
            node, NodeRole.IMG_TAG, options.img_tag_extensions, "The <img> tag"
        )
    if node.name == options.tag_name:
        return _check_extension(
            node,
            NodeRole.COMPONENT,
            options.component_extensions,
            f"The {options.tag_name} component",
        )
    if node.name == "img":
        return Classification(False, reason="optimizeAll is disabled for <img> tags")
    return Classification(False, reason=f"<{node.name}> is not an image node")


def _check_extension(
    node: Node, role: NodeRole, extensions: Tuple[str, ...], label: str
) -> Classification:
    src = node.attribute("src")
    # Dynamic or blank values are reported by the resolver.
    if src is not None and isinstance(src.value, StaticValue) and src.value.text.strip():
        value = src.value.text.strip()
        if not has_allowed_extension(value, extensions):
            return Classification(
                False,
                role=role,
                extensions=extensions,
                reason=(
                    f"{label} was passed a file ({value}) whose extension is not one of "
                    f"{', '.join(extensions)}"
                ),
            )
    return Classification(True, role=role, extensions=extensions)
