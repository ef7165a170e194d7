"""Hierarchical JSON document store with on-create triggers.

Paths look like ``/tracks/123``. Writes follow realtime-database semantics:
setting ``None`` deletes a node and empty objects are pruned. When a path is
given the whole tree is persisted to that JSON file after every write
(in a worker thread, one save at a time); without one the store lives in memory only.
"""
import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

TriggerHandler = Callable[[Any, Dict[str, str]], Awaitable[None]]


def split_path(path: str) -> List[str]:
    """'/purchases/X/tracks' -> ['purchases', 'X', 'tracks']."""
    return [part for part in str(path).strip("/").split("/") if part]


def write_path(path: str) -> List[str]:
    """Split a path for writing. Empty segments ('/purchases/', 'a//b', '/') are rejected."""
    text = str(path)
    parts = (text[1:] if text.startswith("/") else text).split("/")
    if any(not part for part in parts):
        raise ValueError(f"Invalid store path {path!r}")
    return parts


def _prune(value: Any) -> Any:
    """Drop None children and empty objects. Returns None if nothing is left."""
    if isinstance(value, dict):
        out = {}
        for key, child in value.items():
            child = _prune(child)
            if child is not None:
                out[str(key)] = child
        return out or None
    return value


def _key_order(key: str) -> Tuple[int, int, str]:
    """Integer-like keys sort numerically, before all other keys."""
    try:
        return (0, int(key), "")
    except ValueError:
        return (1, 0, key)


def _is_param(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def _match(pattern: List[str], parts: List[str]) -> Optional[Dict[str, str]]:
    """Match concrete path parts against a pattern like ['tracks', '{id}']."""
    if len(pattern) != len(parts):
        return None
    params: Dict[str, str] = {}
    for seg, part in zip(pattern, parts):
        if _is_param(seg):
            params[seg[1:-1]] = part
        elif seg != part:
            return None
    return params


def _child(node: Any, parts: List[str]) -> Any:
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _walk(node: Any, pattern: List[str], prefix: List[str]) -> Iterator[List[str]]:
    """Yield concrete paths under node that match the remaining pattern segments."""
    if not pattern:
        yield prefix
        return
    if not isinstance(node, dict):
        return
    seg, rest = pattern[0], pattern[1:]
    keys = list(node) if _is_param(seg) else ([seg] if seg in node else [])
    for key in keys:
        yield from _walk(node[key], rest, prefix + [key])


class DocumentStore:
    """Keyed hierarchical read/write store with range query and create events."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._data: Dict[str, Any] = {}
        self._subscriptions: List[Tuple[List[str], TriggerHandler]] = []
        self._pending: Set["asyncio.Task[None]"] = set()
        self._save_lock = asyncio.Lock()
        if path is not None:
            self._data = self._load(path)

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read document store %s: %s", path, e)
            return {}
        return data if isinstance(data, dict) else {}

    async def _save(self) -> None:
        """Write the whole tree to disk off the event loop; saves run one at a time."""
        if self._path is None:
            return
        async with self._save_lock:
            text = json.dumps(self._data, indent=2)
            await asyncio.to_thread(self._write_file, self._path, text)

    @staticmethod
    def _write_file(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)

    async def get(self, path: str) -> Any:
        """Return a copy of the value at path, or None."""
        parts = split_path(path)
        node = self._data if not parts else _child(self._data, parts)
        return copy.deepcopy(node) if node != {} else None

    async def set(self, path: str, value: Any) -> None:
        """Replace the value at path. None deletes the node."""
        await self._write(write_path(path), lambda current: value)

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        """Merge children into the node at path. Keys may be relative paths."""
        parts = write_path(path)
        key_paths = {key: write_path(key) for key in partial}

        def merge(current: Any) -> Any:
            merged = copy.deepcopy(current) if isinstance(current, dict) else {}
            for key, child in partial.items():
                key_parts = key_paths[key]
                node = merged
                for part in key_parts[:-1]:
                    if not isinstance(node.get(part), dict):
                        node[part] = {}
                    node = node[part]
                node[key_parts[-1]] = child
            return merged

        await self._write(parts, merge)

    async def query(
        self,
        path: str,
        field: str,
        value: Any,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Children of path whose ``field`` equals value (missing counts as None), in key order."""
        node = await self.get(path)
        if not isinstance(node, dict):
            return {}
        out: Dict[str, Any] = {}
        for key in sorted(node, key=_key_order):
            child = node[key]
            child_value = child.get(field) if isinstance(child, dict) else None
            if child_value != value:
                continue
            out[key] = child
            if limit is not None and len(out) >= limit:
                break
        return out

    def on_create(self, pattern: str, handler: TriggerHandler) -> None:
        """Call handler(value, params) whenever a node matching pattern is created."""
        self._subscriptions.append((split_path(pattern), handler))

    async def drain(self) -> None:
        """Wait for in-flight trigger handlers, including any they start."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _write(self, parts: List[str], compute: Callable[[Any], Any]) -> None:
        existed = [_child(self._data, parts[:i]) is not None for i in range(1, len(parts) + 1)]
        before = copy.deepcopy(_child(self._data, parts))
        after = _prune(copy.deepcopy(compute(before)))

        parent = self._data
        for part in parts[:-1]:
            if not isinstance(parent.get(part), dict):
                parent[part] = {}
            parent = parent[part]
        if after is None:
            parent.pop(parts[-1], None)
        else:
            parent[parts[-1]] = after
        self._data = _prune(self._data) or {}
        self._fire_created(parts, existed, before, after)
        await self._save()

    def _fire_created(
        self,
        parts: List[str],
        existed: List[bool],
        before: Any,
        after: Any,
    ) -> None:
        if after is None:
            return
        for pattern, handler in self._subscriptions:
            if len(pattern) <= len(parts):
                # Pattern names the written node or one of its ancestors
                concrete = parts[: len(pattern)]
                params = _match(pattern, concrete)
                if params is None or existed[len(pattern) - 1]:
                    continue
                value = _child(self._data, concrete)
                self._dispatch(handler, value, params, concrete)
                continue
            if _match(pattern[: len(parts)], parts) is None:
                continue
            for rel in _walk(after, pattern[len(parts):], []):
                if _child(before, rel) is not None:
                    continue
                concrete = parts + rel
                value = _child(self._data, concrete)
                self._dispatch(handler, value, _match(pattern, concrete) or {}, concrete)

    def _dispatch(
        self,
        handler: TriggerHandler,
        value: Any,
        params: Dict[str, str],
        parts: List[str],
    ) -> None:
        path = "/" + "/".join(parts)
        logger.debug("Trigger: created %s", path)
        task = asyncio.get_running_loop().create_task(
            self._run_trigger(handler, copy.deepcopy(value), params, path)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _run_trigger(
        handler: TriggerHandler,
        value: Any,
        params: Dict[str, str],
        path: str,
    ) -> None:
        try:
            await handler(value, params)
        except Exception:
            # Triggers are not retried; the retry sweep is the recovery path
            logger.exception("Trigger for %s failed", path)
