"""Typed project field values and field-schema resolution."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Union


@dataclass(frozen=True)
class TextValue:
    text: str

    def encode(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class NumberValue:
    number: float

    def encode(self) -> dict[str, Any]:
        return {"number": float(self.number)}


@dataclass(frozen=True)
class DateValue:
    date: date

    def encode(self) -> dict[str, Any]:
        return {"date": self.date.isoformat()}


@dataclass(frozen=True)
class SingleSelectValue:
    option_id: str

    def encode(self) -> dict[str, Any]:
        return {"singleSelectOptionId": self.option_id}


FieldValue = Union[TextValue, NumberValue, DateValue, SingleSelectValue]


@dataclass
class ProjectField:
    id: str
    name: str
    data_type: str = "TEXT"
    options: dict[str, str] = field(default_factory=dict)  # lower-cased name -> option id

    def option_id(self, name: str) -> str | None:
        return self.options.get(name.lower())

    def value_for(self, raw: Any) -> FieldValue | None:
        """Encode ``raw`` for this field's data type, or None if it cannot be."""
        if raw is None or raw == "":
            return None
        if self.data_type == "SINGLE_SELECT":
            opt = self.option_id(str(raw))
            return SingleSelectValue(opt) if opt else None
        if self.data_type == "DATE":
            return DateValue(raw) if isinstance(raw, date) else None
        if self.data_type == "NUMBER":
            try:
                return NumberValue(float(raw))
            except (TypeError, ValueError):
                return None
        if isinstance(raw, date):
            return TextValue(raw.isoformat())
        return TextValue(str(raw))


ROLES = ("budget", "category", "tags", "status", "size", "start_date", "end_date")

_WORD_RE = re.compile(r"[a-z]+")


def match_role(name: str) -> str | None:
    """Semantic role for a board field name, matched on whole words."""
    words = set(_WORD_RE.findall(name.lower()))
    if "budget" in words:
        return "budget"
    if words & {"category", "categories"}:
        return "category"
    if words & {"tag", "tags", "label", "labels"}:
        return "tags"
    if "status" in words:
        return "status"
    if "size" in words:
        return "size"
    timed = bool(words & {"date", "time"})
    if "start" in words and timed:
        return "start_date"
    if ("end" in words and timed) or "deadline" in words:
        return "end_date"
    return None


def resolve_fields(nodes: list[dict]) -> dict[str, ProjectField]:
    """Map roles to board fields. The first field matching a role wins."""
    resolved: dict[str, ProjectField] = {}
    for node in nodes or []:
        if not node or not node.get("id") or not node.get("name"):
            continue
        role = match_role(node["name"])
        if role is None or role in resolved:
            continue
        resolved[role] = ProjectField(
            id=node["id"],
            name=node["name"],
            data_type=node.get("dataType") or "TEXT",
            options={o["name"].lower(): o["id"] for o in node.get("options") or [] if o.get("name")},
        )
    return resolved
