"""Event title classifier

Decides whether a calendar event title looks like a prospective client meeting
and, if so, which client it names. Rules run first-match-wins:

1. internal keywords ("Reunião de Equipe", "Leadership sync") mark the event as
   a meeting that is never a lead source;
2. client-meeting phrases ("Reunião Ana Silva", "Demo with Acme") capture the
   free text after the phrase as the client name;
3. anything else is not a meeting.
"""

import re
from dataclasses import dataclass
from typing import Optional

# Hand-maintained lists. Keep them in sync with the product copy, do not grow them ad hoc.
INTERNAL_KEYWORDS = (
    "liderança",
    "lideranca",
    "equipe",
    "time",
    "interna",
    "interno",
    "diretoria",
    "gestão",
    "gestao",
    "leadership",
    "team",
    "internal",
    "board",
    "one-on-one",
    "onboarding",
    "standup",
    "retro",
)

# Most specific phrasing first: "apresentação" must win over generic phrases
CLIENT_MEETING_PHRASES = (
    r"apresenta[çc][ãa]o",
    r"demonstra[çc][ãa]o",
    r"presentation",
    r"demo",
    r"visita",
    r"visit",
    r"reuni[ãa]o",
    r"meeting",
    r"liga[çc][ãa]o",
    r"call",
)

PREPOSITIONS = ("com", "de", "da", "do", "das", "dos", "na", "no", "em", "para", "with", "at", "for")

MIN_CLIENT_NAME_LENGTH = 2

_SEPARATOR_CHARS = r":|/\-–—"
_BRACKETS = re.compile(r"[()\[\]{}<>]")

# Anchored at the start of a word only, so plurals and inflections ("equipes", "diretorias") count
_INTERNAL_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(keyword) for keyword in INTERNAL_KEYWORDS) + r")",
    re.IGNORECASE,
)


def _compile_phrase(phrase: str) -> re.Pattern:
    preps = "|".join(PREPOSITIONS)
    return re.compile(
        rf"\b(?:{phrase})(?=$|[\s{_SEPARATOR_CHARS}])"
        rf"(?:(?:\s*[{_SEPARATOR_CHARS}]\s*|\s+)(?:(?:{preps})\s+)?(?P<name>.*))?$",
        re.IGNORECASE,
    )


CLIENT_MEETING_PATTERNS = tuple(_compile_phrase(phrase) for phrase in CLIENT_MEETING_PHRASES)


@dataclass(frozen=True)
class TitleClassification:
    is_meeting: bool
    client_name: Optional[str] = None

    @property
    def is_lead(self) -> bool:
        return self.is_meeting and self.client_name is not None


NOT_A_MEETING = TitleClassification(is_meeting=False)
UNNAMED_MEETING = TitleClassification(is_meeting=True)


def clean_client_name(raw: Optional[str]) -> Optional[str]:
    """Trim and drop bracket characters; None when too short to be a usable name"""
    if not raw:
        return None
    name = _BRACKETS.sub("", raw.strip()).strip()
    if len(name) < MIN_CLIENT_NAME_LENGTH or name.lower() in PREPOSITIONS:
        return None
    return name


def classify_title(title: Optional[str]) -> TitleClassification:
    """Classify a raw event title"""
    if not title or not title.strip():
        return NOT_A_MEETING

    if _INTERNAL_PATTERN.search(title):
        return UNNAMED_MEETING

    for pattern in CLIENT_MEETING_PATTERNS:
        match = pattern.search(title.strip())
        if match:
            client_name = clean_client_name(match.group("name"))
            return TitleClassification(is_meeting=True, client_name=client_name)

    return NOT_A_MEETING
