"""Split LaTeX source into its sectioning units (\\part … \\subparagraph)."""

from __future__ import annotations

import re
from dataclasses import dataclass

SECTION_TYPES = (
    "part",
    "chapter",
    "section",
    "subsection",
    "subsubsection",
    "paragraph",
    "subparagraph",
)

_SECTION_RE = re.compile(r"\\(" + "|".join(SECTION_TYPES) + r")\*?\{([^}]+)\}")


@dataclass
class Section:
    type: str
    title: str
    start: int  # offset of the heading command in the source
    content: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.type,
            "title": self.title,
            "startIndex": self.start,
            "content": self.content,
        }


def parse_sections(text: str) -> list[Section]:
    """Return every heading in order; content runs up to the next heading."""
    matches = list(_SECTION_RE.finditer(text))
    sections: list[Section] = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        sections.append(
            Section(
                type=match.group(1),
                title=match.group(2),
                start=match.start(),
                content=text[match.end():end].strip(),
            )
        )
    return sections


def find_section(sections: list[Section], title: str) -> Section | None:
    return next((s for s in sections if s.title == title), None)


def sections_by_type(sections: list[Section], section_type: str) -> list[Section]:
    return [s for s in sections if s.type == section_type]
