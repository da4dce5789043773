"""
Write the OpenAPI schema of the front end's JSON endpoints to disk.

Usage:
    python -m src.web.generate_openapi [output-path]

The default output is interfaces/openapi.json under the container root.
HTML page routes are excluded from the schema.
"""
from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional

from .main import create_app, openapi_tags
from .remote import InMemoryRemoteStore


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Add any tag from openapi_tags that the generated schema lacks, keeping
    the existing definitions.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


def _default_path() -> str:
    src_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    container_root = os.path.dirname(src_dir)
    return os.path.join(container_root, "interfaces", "openapi.json")


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """Generate the OpenAPI schema file and return the written file path."""
    # The schema does not depend on the backend, so no remote client is opened
    schema = create_app(remote=InMemoryRemoteStore()).openapi()
    _ensure_tags(schema)

    path = out_path or _default_path()
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    return path


def main() -> None:
    path = generate_openapi(sys.argv[1] if len(sys.argv) > 1 else None)
    print(f"Wrote OpenAPI schema to: {path}")


if __name__ == "__main__":
    main()
