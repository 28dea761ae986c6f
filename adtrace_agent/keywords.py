from __future__ import annotations

import math
import re
from collections import Counter

from .models import AdRecord, KeywordResult, KeywordScore
from .stopwords import GENERIC_AD_WORDS, STOP_WORDS
from .urls import normalize_alias

_PUNCT_RE = re.compile(r"[^\wäöüßÄÖÜ\s-]")


class _BrandFilter:
    def __init__(self, brand_name: str):
        self.lower = brand_name.lower().strip()
        self.normalized = normalize_alias(self.lower)

    def __call__(self, word: str) -> bool:
        return (
            word == self.lower
            or normalize_alias(word) == self.normalized
            or word in self.lower
            or self.lower in word
        )


def tokenize(text: str, is_brand_word) -> list[str]:
    """Lower-case content words of ``text`` (umlauts kept, noise dropped)."""
    words = []
    for raw in _PUNCT_RE.sub(" ", text or "").split():
        if len(raw) < 4:
            continue
        w = raw.lower().strip()
        if w.isdigit() or w[0].isdigit():
            continue
        if w in STOP_WORDS or is_brand_word(w):
            continue
        words.append(w)
    return words


def _compound_keywords(ads: list[AdRecord], is_brand_word) -> list[KeywordScore]:
    counts: Counter[str] = Counter()
    for ad in ads:
        for text in ad.ad_creative_bodies + ad.ad_creative_link_titles:
            words = tokenize(text, is_brand_word)
            for first, second in zip(words, words[1:]):
                if first in GENERIC_AD_WORDS or second in GENERIC_AD_WORDS:
                    continue
                if first == second:
                    continue
                counts[f"{first.capitalize()} {second.capitalize()}"] += 1

    ranked = [(k, c) for k, c in counts.most_common() if c >= 3][:10]
    return [KeywordScore(keyword=k, frequency=c, source="body") for k, c in ranked]


def generate_keywords(ads: list[AdRecord], brand_name: str, max_keywords: int = 10) -> KeywordResult:
    """Mine the brand's own ad copy for niche search terms.

    Single words that occur at least ``max(3, 0.5% of ads)`` times come first,
    ranked by frequency; frequent two-word compounds fill the remaining slots
    unless both of their words are already present.
    """
    is_brand_word = _BrandFilter(brand_name)
    freq: Counter[str] = Counter()
    first_source: dict[str, str] = {}

    for ad in ads:
        for source, texts in (
            ("body", ad.ad_creative_bodies),
            ("title", ad.ad_creative_link_titles),
            ("description", ad.ad_creative_link_descriptions),
        ):
            for text in texts:
                for word in tokenize(text, is_brand_word):
                    if word in GENERIC_AD_WORDS:
                        continue
                    freq[word] += 1
                    first_source.setdefault(word, source)

    min_frequency = max(3, math.ceil(len(ads) * 0.005))
    singles = [(w, c) for w, c in freq.most_common() if c >= min_frequency][:max_keywords]

    keywords: list[str] = []
    scores: list[KeywordScore] = []
    for word, count in singles:
        keywords.append(word)
        scores.append(KeywordScore(keyword=word, frequency=count, source=first_source[word]))

    for compound in _compound_keywords(ads, is_brand_word):
        if len(keywords) >= max_keywords:
            break
        parts = compound.keyword.lower().split(" ")
        if all(p in keywords for p in parts) or compound.keyword in keywords:
            continue
        keywords.append(compound.keyword)
        scores.append(compound)

    return KeywordResult(keywords=keywords, scores=scores, total_ads_analyzed=len(ads))
