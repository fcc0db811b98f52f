"""Parser for ``kubectl explain --recursive`` output.

Recognises the header lines (``GROUP:``, ``KIND:``, ``VERSION:``,
``DESCRIPTION:``) and turns indented ``name <type>`` field lines into
dotted paths::

    FIELDS:
      spec  <Object>
        forProvider <Object>
          resourceGroupName <string>

yields ``spec.forProvider.resourceGroupName``.  Text without a ``FIELDS:``
header is treated as a bare field listing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_FIELD_LINE = re.compile(r"^(?P<indent>[ \t]*)(?P<name>[A-Za-z_$][\w$-]*)\s+<(?P<type>[^>]+)>(?P<rest>.*)$")
_HEADER_LINE = re.compile(r"^(?P<key>GROUP|KIND|VERSION|RESOURCE|FIELD|DESCRIPTION|FIELDS):\s*(?P<value>.*)$")
_TAB_WIDTH = 4


@dataclass(frozen=True)
class SchemaField:
    """One field of a resource schema."""

    path: str
    name: str
    type: str
    required: bool = False
    line: int = field(default=-1, compare=False)  # 0-based line number in the explain text


@dataclass
class ExplainSchema:
    """Structured view of one resource kind's explain output."""

    kind: str = ""
    group: str = ""
    version: str = ""
    description: str = ""
    fields: list[SchemaField] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def find(self, name: str) -> list[SchemaField]:
        """All fields named ``name`` at any depth."""
        return [f for f in self.fields if f.name == name]

    def field_at(self, line: int) -> SchemaField | None:
        """The field declared on ``line`` of the explain text, if any."""
        return next((f for f in self.fields if f.line == line), None)


def parse_explain(text: str) -> ExplainSchema:
    """Parse explain output.  Never raises; unparsable text yields an empty schema."""
    schema = ExplainSchema()
    lines = text.splitlines()
    has_fields_header = any(line.startswith("FIELDS:") for line in lines)
    in_fields = not has_fields_header
    in_description = False
    description: list[str] = []
    stack: list[tuple[int, str]] = []

    for line_no, line in enumerate(lines):
        header = _HEADER_LINE.match(line)
        if header:
            key, value = header.group("key"), header.group("value").strip()
            in_description = key == "DESCRIPTION"
            if key == "FIELDS":
                in_fields = True
            elif key == "KIND":
                schema.kind = value
            elif key == "GROUP":
                schema.group = value
            elif key == "VERSION":
                # Older kubectl prints "group/version" here and has no GROUP line.
                if "/" in value:
                    group, _, version = value.rpartition("/")
                    schema.group = schema.group or group
                    schema.version = version
                else:
                    schema.version = value
            elif key == "DESCRIPTION" and value:
                description.append(value)
            continue

        if in_description and not in_fields:
            if line.strip():
                description.append(line.strip())
            continue

        if not in_fields:
            continue
        match = _FIELD_LINE.match(line)
        if match is None:
            continue
        indent = len(match.group("indent").expandtabs(_TAB_WIDTH))
        name = match.group("name")
        while stack and stack[-1][0] >= indent:
            stack.pop()
        path = ".".join([*(n for _, n in stack), name])
        stack.append((indent, name))
        schema.fields.append(
            SchemaField(
                path=path,
                name=name,
                type=match.group("type").strip(),
                required="-required-" in match.group("rest"),
                line=line_no,
            )
        )

    schema.description = " ".join(description)
    return schema
