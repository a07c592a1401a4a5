"""JSON Schemas for the requirement catalog and exported snapshots."""

from __future__ import annotations

from typing import Any

from jsonschema import validate as _validate
from jsonschema.exceptions import ValidationError

from .model import Category, LearningStatus, MediaType, QTD_ALL, QTD_NONE

_QTD_SCHEMA: dict[str, Any] = {
    "anyOf": [
        {"enum": [QTD_NONE, QTD_ALL]},
        {"type": "integer", "minimum": 0},
        {"type": "string", "pattern": "^[0-9]+$"},
    ]
}

REQUIREMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "name", "category"],
    "properties": {
        "id": {"type": "integer"},
        "order": {"type": "integer"},
        "name": {"type": "string", "minLength": 1},
        "qtd": _QTD_SCHEMA,
        "category": {"enum": [e.value for e in Category]},
    },
}

CATALOG_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": REQUIREMENT_SCHEMA,
}

_OPTIONAL_TEXT = {"type": ["string", "null"]}

_MEDIA_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "type", "title", "url"],
    "properties": {
        "id": {"type": "string"},
        "type": {"enum": [e.value for e in MediaType]},
        "title": {"type": "string"},
        "url": {"type": "string"},
        "notes": _OPTIONAL_TEXT,
        "chapters": _OPTIONAL_TEXT,
        "folderId": _OPTIONAL_TEXT,
        "displayOrder": {"type": "integer"},
    },
}

_FOLDER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
    },
}

SNAPSHOT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["userState", "groups"],
    "properties": {
        "version": {"type": "string"},
        "exportedAt": {"type": "string"},
        "requirements": CATALOG_SCHEMA,
        "userState": {
            "type": "object",
            "propertyNames": {"pattern": "^-?[0-9]+$"},
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "reqId": {"type": "integer"},
                    "status": {"enum": [e.value for e in LearningStatus]},
                    "notes": {"type": "string"},
                    "media": {"type": "array", "items": _MEDIA_SCHEMA},
                    "folders": {"type": "array", "items": _FOLDER_SCHEMA},
                },
            },
        },
        "groups": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["name", "requirementIds"],
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "requirementIds": {
                        "type": "array",
                        "items": {"type": "integer"},
                    },
                    "collapsed": {"type": "boolean"},
                },
            },
        },
        "listOrder": {
            "type": "array",
            "items": {"type": ["integer", "string"]},
        },
    },
}


def validate(data: Any, schema: dict[str, Any]) -> None:
    """Validate *data* against *schema*.

    Raises :class:`ValueError` if validation fails.
    """
    try:
        _validate(data, schema)
    except ValidationError as exc:
        raise ValueError(exc.message) from exc
