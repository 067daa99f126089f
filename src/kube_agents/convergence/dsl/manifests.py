from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..resources import ResourceRef


def read_manifest(path: Path) -> list[dict[str, Any]]:
    """Read every resource document from a (possibly multi-document) manifest.

    JSON is a subset of YAML, so both formats go through the YAML loader.
    Empty documents (``---`` separators with nothing between them) are
    skipped.
    """

    text = path.read_text(encoding="utf-8")
    documents: list[dict[str, Any]] = []
    for index, document in enumerate(yaml.safe_load_all(text)):
        if document is None:
            continue
        if not isinstance(document, dict):
            msg = f"{path}: document {index} is not a mapping"
            raise ValueError(msg)
        _check_document(path, index, document)
        documents.append(document)
    return documents


def _check_document(path: Path, index: int, document: dict[str, Any]) -> None:
    missing = [key for key in ("apiVersion", "kind") if not document.get(key)]
    metadata = document.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("name"):
        missing.append("metadata.name")
    if missing:
        msg = f"{path}: document {index} is missing {', '.join(missing)}"
        raise ValueError(msg)


def manifest_resources(path: Path, default_namespace: str) -> list[tuple[ResourceRef, dict[str, Any]]]:
    return [
        (ResourceRef.from_document(document).with_default_namespace(default_namespace), document)
        for document in read_manifest(path)
    ]
