"""YAML manifest helpers for Pod and Namespace files.

Uses ruamel.yaml so a patched Pod manifest keeps its comments, key order and
quoting when written back out.
"""

from io import StringIO
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML


def _create_yaml_instance() -> YAML:
    """Create configured ruamel.yaml instance for manifest editing.

    Returns:
        YAML instance configured to:
        - Preserve quotes and formatting
        - Not wrap long strings
        - Use block style (not flow style)
    """
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 4096
    yaml.default_flow_style = False
    yaml.allow_unicode = True
    return yaml


def load_manifest(path: str) -> Any:
    """Load a single-document YAML (or JSON) manifest from ``path``."""
    yaml = _create_yaml_instance()
    return yaml.load(Path(path).read_text(encoding="utf-8"))


def dump_manifest(manifest: Any) -> str:
    """Render a manifest back to YAML text."""
    yaml = _create_yaml_instance()
    stream = StringIO()
    yaml.dump(manifest, stream)
    return stream.getvalue()


def manifest_annotations(manifest: Any) -> Optional[Dict[str, str]]:
    """Return ``metadata.annotations`` of a manifest, None when absent."""
    if not isinstance(manifest, dict):
        return None
    annotations = (manifest.get("metadata") or {}).get("annotations")
    if not annotations:
        return None
    return {str(k): str(v) for k, v in annotations.items()}
