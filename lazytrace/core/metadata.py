"""
Debug metadata attached to IR nodes: the naming scope and, optionally, the
Python call site that built the node.
"""

import os
import threading
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__))) + os.sep


@dataclass(frozen=True)
class SourceLocation:
    """One Python frame that led to a node's construction."""
    file: str
    line: int
    function: str

    def __str__(self):
        return f"{os.path.basename(self.file)}:{self.line} ({self.function})"


@dataclass(frozen=True)
class NodeMetadata:
    """Scope and source information of a node. Never part of its hash."""
    scope: str = ""
    frame_info: Tuple[SourceLocation, ...] = field(default_factory=tuple)


_scope_state = threading.local()


def _scope_stack() -> List[str]:
    stack = getattr(_scope_state, 'stack', None)
    if stack is None:
        stack = []
        _scope_state.stack = stack
    return stack


def current_scope() -> str:
    """Scope of the calling thread, nested names joined by '/'."""
    return "/".join(_scope_stack())


@contextmanager
def scope(name: str) -> Iterator[str]:
    """
    Push a naming scope for every node built inside the block.

    Usage:
        with scope("encoder"):
            with scope("layer0"):
                node = Generic(...)   # node.metadata.scope == "encoder/layer0"
    """
    stack = _scope_stack()
    stack.append(name)
    try:
        yield current_scope()
    finally:
        stack.pop()


def capture_frames(max_depth: int) -> Tuple[SourceLocation, ...]:
    """Innermost-first call sites outside the lazytrace package."""
    frames = []
    for summary in reversed(traceback.extract_stack()):
        if os.path.abspath(summary.filename).startswith(_PACKAGE_DIR):
            continue
        frames.append(SourceLocation(summary.filename, summary.lineno, summary.name))
        if len(frames) >= max_depth:
            break
    return tuple(frames)


def capture_metadata(record_frames: Optional[bool] = None,
                     max_depth: Optional[int] = None) -> NodeMetadata:
    """Build metadata for a node being constructed on this thread."""
    if record_frames is None or max_depth is None:
        from ..config import get_config
        ir_config = get_config().ir
        if record_frames is None:
            record_frames = ir_config.record_frame_info
        if max_depth is None:
            max_depth = ir_config.max_frame_depth
    frames = capture_frames(max_depth) if record_frames and max_depth > 0 else ()
    return NodeMetadata(scope=current_scope(), frame_info=frames)


__all__ = [
    'SourceLocation',
    'NodeMetadata',
    'scope',
    'current_scope',
    'capture_frames',
    'capture_metadata',
]
