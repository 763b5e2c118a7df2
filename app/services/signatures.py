from __future__ import annotations

import re
from enum import Enum


class Signature(str, Enum):
    CORRUPTED_RESUME = "corrupted_resume"
    EXPERIENCE_GAP = "experience_gap"
    WRONG_ORGANIZATION = "wrong_organization"
    CITIZENSHIP_CONFLICT = "citizenship_conflict"


# Sentence ends, punctuation and contrastive conjunctions bound a clause.
# A period right after a lone letter ("U.S.", "e.g.") does not.
_CLAUSE_BREAK = re.compile(
    r"(?<!\b[A-Za-z])\.(?=\s|$)|[;:!?,\n]"
    r"|\b(?:and|but|however|although|though|whereas|while|yet)\b",
    re.IGNORECASE,
)

_NEGATION = re.compile(r"\b(?:not|never|no|nor|cannot)\b|n't\b", re.IGNORECASE)

_CORRUPTED_RESUME = re.compile(
    r"\b(?:corrupt(?:ed|ion)?|unreadable|illegible|gibberish"
    r"|(?:could|can)\s*not\s+be\s+(?:parsed|read)"
    r"|zero\s+usable|no\s+(?:usable|readable)\s+(?:content|information|text)"
    r"|(?:blank|empty)\s+resume)\b",
    re.IGNORECASE,
)

_DOES_NOT = r"(?:does\s+not|doesn't|do\s+not|don't)"

_EXPERIENCE_GAP = re.compile(
    r"\b(?:lack(?:s|ing)?\b[^.;,]{0,60}?\brequired\b[^.;,]{0,40}?\b(?:experience|years?)\b"
    r"|lack(?:s|ing)?\s+(?:the\s+)?(?:necessary|sufficient|relevant|minimum)\s+(?:[\w+-]+\s+){0,3}?experience"
    r"|" + _DOES_NOT + r"\s+(?:have|possess)\s+(?:the\s+)?(?:required|necessary|sufficient|enough|minimum|\d+)"
    r"[^.;,]{0,40}?\b(?:experience|years?)\b"
    r"|(?:" + _DOES_NOT + r"|fails?\s+to)\s+(?:meet|satisfy)\b[^.;,]{0,50}?\b(?:experience|years?)\b"
    r"|only\s+\d+\+?\s*-?\s*years?\b[^.;,]{0,60}?\b(?:required|requirement|needed|expected|minimum)\b"
    r"|(?:below|under|short\s+of|less\s+than)\s+(?:the\s+)?(?:required|minimum)\b[^.;,]{0,30}?\b(?:experience|years?)\b"
    r"|(?:insufficient|inadequate|not\s+enough)\s+(?:professional\s+|relevant\s+|work\s+|industry\s+)?experience"
    r"|missing\s+(?:the\s+)?required\b[^.;,]{0,40}?\b(?:experience|years?)\b"
    r"|experience\s+requirements?\s+(?:is\s+|are\s+)?(?:not\s+met|unmet)"
    r"|no\s+(?:clear\s+|verifiable\s+)?evidence\s+of\b[^.;,]{0,40}?\b(?:experience|years?)\b"
    r"|(?:cannot|can't|could\s+not|couldn't|unable\s+to)\s+verify\b[^.;,]{0,40}?\b(?:experience|years?)\b"
    r"|student\b[^.;,]{0,40}?\brather\s+than)",
    re.IGNORECASE,
)

_WRONG_ORGANIZATION = re.compile(
    r"\b(?:wrong\s+(?:company|organi[sz]ation|employer)"
    r"|incorrect\s+(?:company|organi[sz]ation|employer)"
    r"|(?:addressed|written)\s+to\s+(?:a\s+different|another|the\s+wrong)\s+(?:company|organi[sz]ation|employer)"
    r"|(?:mentions|references|names)\s+(?:a\s+different|another)\s+(?:company|organi[sz]ation|employer))",
    re.IGNORECASE,
)

_US = r"(?:u\.?s\.?\s+)?"

_DIRECTIVE_CITIZENSHIP = re.compile(
    r"\b(?:citizens?\s+only|only\s+" + _US + r"citizens?"
    r"|citizenship\s+(?:is\s+)?(?:required|mandatory|needed|a\s+must)"
    r"|(?:requires?|requiring)\s+" + _US + r"citizenship"
    r"|" + _US + r"citizens?\s+(?:is\s+|are\s+)?required"
    r"|must\s+(?:be\s+|hold\s+)?(?:a\s+)?" + _US + r"citizen(?:s|ship)?"
    r"|(?:no|without)\s+(?:visa\s+)?sponsorship"
    r"|(?:cannot|can't|will\s+not|won't|do\s+not|does\s+not)\s+(?:offer\s+|provide\s+)?(?:visa\s+)?sponsor"
    r"|sponsorship\s+(?:is\s+)?not\s+(?:available|offered|provided)"
    r"|(?:must\s+(?:be\s+)?)?(?:authori[sz]ed|eligible)\s+to\s+work\s+without\s+sponsorship)",
    re.IGNORECASE,
)

_CANDIDATE_NEEDS_SPONSORSHIP = re.compile(
    r"\b(?:requires?|requiring|needs?|needing|will\s+need|would\s+need|seeking|seeks|dependent\s+on)"
    r"\s+(?:visa\s+|h-?1b\s+|work\s+)?(?:sponsorship|a\s+visa|visa|work\s+(?:permit|authori[sz]ation))"
    r"|\bnot\s+(?:a\s+)?" + _US + r"citizen\b"
    r"|\bnon-citizen\b",
    re.IGNORECASE,
)


def _clauses(text: str) -> list[str]:
    return [clause.strip() for clause in _CLAUSE_BREAK.split(text) if clause and clause.strip()]


def _affirmed(pattern: re.Pattern[str], text: str) -> bool:
    """True when a clause states the pattern without a negation ahead of it."""
    if not text:
        return False
    for clause in _clauses(text):
        for match in pattern.finditer(clause):
            if not _NEGATION.search(clause[: match.start()]):
                return True
    return False


def detect_signatures(
    weakness_text: str,
    remarks_text: str,
    private_directives: str | None,
) -> frozenset[Signature]:
    """Scan analysis language for the known scoring failure signatures."""
    combined = f"{weakness_text or ''}\n{remarks_text or ''}"
    found: set[Signature] = set()
    if _affirmed(_CORRUPTED_RESUME, combined):
        found.add(Signature.CORRUPTED_RESUME)
    if _affirmed(_EXPERIENCE_GAP, combined):
        found.add(Signature.EXPERIENCE_GAP)
    if _affirmed(_WRONG_ORGANIZATION, combined):
        found.add(Signature.WRONG_ORGANIZATION)

    directives = (private_directives or "").strip()
    if (
        directives
        and _affirmed(_DIRECTIVE_CITIZENSHIP, directives)
        and _affirmed(_CANDIDATE_NEEDS_SPONSORSHIP, combined)
    ):
        found.add(Signature.CITIZENSHIP_CONFLICT)
    return frozenset(found)


def signature_names(signatures: frozenset[Signature]) -> list[str]:
    return sorted(signature.value for signature in signatures)
