"""
Keyword refinement using Google Gemini.
Given raw keywords mined from a brand's ads, ask the model for the niche terms
that affiliates and presell pages of that brand would also advertise with.
"""
from __future__ import annotations

import logging
import re
from typing import Protocol

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

_NUMBERED_RE = re.compile(r"^\d+[\.\)]")
_BULLET_RE = re.compile(r"^[-•*]\s*")


class KeywordRefiner(Protocol):
    def refine(
        self,
        candidates: list[str],
        brand_name: str,
        page_name: str,
        max_keywords: int,
    ) -> list[str] | None: ...


def build_prompt(candidates: list[str], brand_name: str, page_name: str, max_keywords: int) -> str:
    return f"""Du bist ein Marketing-Analyst für Facebook-Werbung. Die Marke "{brand_name}" (Facebook-Seite: "{page_name}") schaltet Werbeanzeigen.

Aus den Werbetexten der Marke wurden diese Wörter/Begriffe extrahiert (sortiert nach Häufigkeit):
{", ".join(candidates[:40])}

Aufgabe: Wähle die {max_keywords} besten NISCHEN-KEYWORDS aus, die:
1. Spezifisch für die PRODUKTKATEGORIE/NISCHE dieser Marke sind
2. Von Drittanbietern/Affiliates/Presell-Seiten dieser Marke auch in deren Facebook-Werbung verwendet würden
3. NICHT zu generisch sind (keine allgemeinen Wörter wie "Gesundheit", "Qualität", "Angebot")
4. Als Meta Ad Library Suchbegriffe funktionieren (einzelne Wörter oder kurze Phrasen)

Wenn die Kandidaten-Liste KEINE guten Nischen-Keywords enthält, generiere selbst 3-5 passende Keywords basierend auf dem Markennamen und der Produktkategorie.

Antworte NUR mit den Keywords, eines pro Zeile, ohne Nummerierung oder Erklärung."""


def parse_keyword_lines(text: str, max_keywords: int) -> list[str]:
    """One keyword per line; numbered lines are dropped, bullets stripped."""
    out: list[str] = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not 3 <= len(line) <= 40 or _NUMBERED_RE.match(line):
            continue
        line = _BULLET_RE.sub("", line).strip()
        if len(line) >= 3:
            out.append(line)
    return out[:max_keywords]


class GeminiKeywordRefiner:
    def __init__(self, api_key: str | None, model: str = "gemini-2.5-flash"):
        self.api_key = api_key
        self.model = model
        self.last_error: str | None = None

    def refine(
        self,
        candidates: list[str],
        brand_name: str,
        page_name: str,
        max_keywords: int,
    ) -> list[str] | None:
        self.last_error = None
        if not self.api_key or not candidates:
            return None

        prompt = build_prompt(candidates, brand_name, page_name, max_keywords)
        try:
            client = genai.Client(api_key=self.api_key)
            resp = client.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=[types.Part.from_text(text=prompt)])],
                config=types.GenerateContentConfig(temperature=0.3, max_output_tokens=200),
            )
        except Exception as e:
            logger.warning("keyword refinement failed: %s", e)
            self.last_error = str(e)
            return None

        refined = parse_keyword_lines(getattr(resp, "text", None) or "", max_keywords)
        logger.info("refined keywords %s (from %d candidates)", refined, len(candidates))
        return refined or None
