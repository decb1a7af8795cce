"""Loading of vertical schemas from YAML."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from chamby.booking.models import VerticalSchema
from chamby.core.errors import SchemaError

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_DEFAULT_VERTICALS_DIR = _PROJECT_ROOT / "config" / "verticals"


def resolve_verticals_dir(configured: str | Path | None) -> Path:
    """Resolve a configured directory, relative paths against the project root."""
    if configured is None:
        return _DEFAULT_VERTICALS_DIR
    path = Path(configured)
    if path.is_absolute() or path.exists():
        return path
    return _PROJECT_ROOT / path


def load_vertical(path: Path) -> VerticalSchema:
    """Parse and validate one vertical file.

    Raises:
        SchemaError: If the file is not valid YAML or fails validation.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise SchemaError(f"{path.name}: invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaError(f"{path.name}: expected a mapping at top level")
    try:
        return VerticalSchema.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"{path.name}: {exc}") from exc


def load_verticals(directory: str | Path | None = None) -> dict[str, VerticalSchema]:
    """Load every ``*.yml`` vertical in a directory, keyed by vertical id."""
    base = resolve_verticals_dir(directory)
    verticals: dict[str, VerticalSchema] = {}
    if not base.exists():
        logger.warning("Verticals directory %s does not exist", base)
        return verticals
    for path in sorted(base.glob("*.yml")):
        schema = load_vertical(path)
        if schema.id in verticals:
            raise SchemaError(f"{path.name}: duplicate vertical id {schema.id!r}")
        verticals[schema.id] = schema
    logger.info("Loaded %d verticals from %s", len(verticals), base)
    return verticals
