"""Export and re-import of store contents.

Two formats:

* Patch log — one JSON object per line, in insertion order. Replaying it
  into an empty store reproduces every snapshot at every date.
* Entity files — one markdown file per entity, resolved at a single date,
  with the snapshot in YAML frontmatter and the dated history as a list.
  Importing entity files yields one patch per entity, so only the state as
  of `as_of` survives.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

import frontmatter

from chronofact.errors import ValidationError

if TYPE_CHECKING:
    from chronofact.ledger import AttributePatch
    from chronofact.store import TemporalStore

logger = logging.getLogger(__name__)


# ── Patch log (JSONL) ─────────────────────────────────────────


def dump_patches(store: TemporalStore, path: Path) -> int:
    """Write every patch to `path` as JSON lines. Returns the count written.

    Every line is serialized before the file is touched, and the log is
    swapped in with a rename, so a failed dump leaves the old log intact.
    """
    patches = store.patches()
    lines = [_encode_patch(patch) for patch in patches]
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text("".join(lines), encoding="utf-8")
    tmp.replace(path)
    logger.info("Dumped %d patches to %s", len(patches), path)
    return len(patches)


def load_patches(store: TemporalStore, path: Path) -> int:
    """Append every patch from a JSONL log. Returns the count loaded.

    The cached index is invalidated once at the end if anything was loaded.
    """
    count = 0
    with path.open(encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValidationError(f"{path}:{lineno}: invalid JSON ({e.msg})") from e
            if not isinstance(entry, dict):
                raise ValidationError(f"{path}:{lineno}: expected an object")
            try:
                entity = entry["entity"]
                attributes = entry["attributes"]
                effective_date = entry["effective_date"]
            except KeyError as e:
                raise ValidationError(f"{path}:{lineno}: missing field {e.args[0]!r}") from e
            if not isinstance(attributes, dict):
                raise ValidationError(f"{path}:{lineno}: attributes must be an object")
            store.set(entity, _thaw(attributes), effective_date)
            count += 1
    if count:
        store.invalidate_index()
    logger.info("Loaded %d patches from %s", count, path)
    return count


def _encode_patch(patch: AttributePatch) -> str:
    try:
        return json.dumps(patch.to_dict(), ensure_ascii=False) + "\n"
    except (TypeError, ValueError):
        for name, value in patch.attributes.items():
            try:
                json.dumps(value)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Cannot write {patch.entity}.{name} to the patch log: {e}"
                ) from e
        raise


def _thaw(attributes: dict[str, Any]) -> dict[str, Any]:
    return {k: _thaw_value(v) for k, v in attributes.items()}


def _thaw_value(value: Any) -> Any:
    # JSON has no tuples; lists come back as tuples so they stay hashable.
    if isinstance(value, list):
        return tuple(_thaw_value(v) for v in value)
    return value


# ── Entity files (markdown + YAML frontmatter) ────────────────


def _slugify(name: str) -> str:
    """Minimal slug: strip illegal chars, spaces to hyphens."""
    slug = re.sub(r'[<>:"/\\|?*\n\r\t]', "", name)
    slug = slug.strip().replace(" ", "-")
    return slug or "unnamed"


def _render_entity(store: TemporalStore, entity_id: str, at: date) -> str:
    state = store.snapshot(entity_id, at)
    post = frontmatter.Post(
        "",
        entity=entity_id,
        as_of=at.isoformat(),
        attributes=state,
    )
    lines = [f"# {entity_id}", "", "## History"]
    for patch in store.history(entity_id):
        if patch.effective_date > at:
            break
        changes = ", ".join(f"{k}={v}" for k, v in patch.attributes.items())
        lines.append(f"- [{patch.effective_date.isoformat()}] {changes}")
    post.content = "\n".join(lines) + "\n"
    return frontmatter.dumps(post) + "\n"


def export_entities(store: TemporalStore, root: Path, at: date) -> list[Path]:
    """Write one markdown file per entity resolved at `at`."""
    root.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for entity_id in store.entity_ids():
        path = root / f"{_slugify(entity_id)}.md"
        counter = 2
        while path in written:
            path = root / f"{_slugify(entity_id)}-{counter}.md"
            counter += 1
        path.write_text(_render_entity(store, entity_id, at), encoding="utf-8")
        written.append(path)
    logger.info("Exported %d entities @ %s to %s", len(written), at, root)
    return written


def import_entities(store: TemporalStore, root: Path) -> int:
    """Record one patch per entity file found under `root`."""
    count = 0
    for path in sorted(root.glob("*.md")):
        post = frontmatter.loads(path.read_text(encoding="utf-8"))
        meta = post.metadata
        entity = meta.get("entity")
        as_of = meta.get("as_of")
        attributes = meta.get("attributes", {})
        if not entity or as_of is None:
            raise ValidationError(f"{path}: frontmatter needs 'entity' and 'as_of'")
        if not isinstance(attributes, dict):
            raise ValidationError(f"{path}: 'attributes' must be a mapping")
        if attributes:
            store.set(str(entity), _thaw(attributes), as_of)
            count += 1
    if count:
        store.invalidate_index()
    logger.info("Imported %d entities from %s", count, root)
    return count
