from adtrace_agent.keywords import generate_keywords, tokenize
from adtrace_agent.refiner import GeminiKeywordRefiner, build_prompt, parse_keyword_lines


def _never_brand(word: str) -> bool:
    return False


def test_tokenize_drops_short_numeric_and_stop_words():
    words = tokenize("Die 2024 Kollagen-Formel: mit Hyaluron und 500mg!", _never_brand)
    assert "kollagen-formel" in words
    assert "hyaluron" in words
    assert "die" not in words and "und" not in words and "mit" not in words
    assert "2024" not in words and "500mg" not in words


def test_tokenize_keeps_umlauts():
    assert "größe" in tokenize("Größe zählt", _never_brand)


def test_generate_keywords_ranks_by_frequency_and_skips_brand(make_ad):
    ads = [make_ad(bodies=["Glow25 Kollagen Hyaluron Elastin"]) for _ in range(4)]
    ads += [make_ad(bodies=["Kollagen Trinkampullen"]) for _ in range(2)]

    result = generate_keywords(ads, "Glow25", max_keywords=3)

    assert result.keywords == ["kollagen", "hyaluron", "elastin"]
    assert result.scores[0].frequency == 6
    assert result.scores[0].source == "body"
    assert result.total_ads_analyzed == 6
    assert "glow25" not in result.keywords


def test_generate_keywords_frequency_floor(make_ad):
    ads = [make_ad(bodies=["Kollagen Hyaluron"]), make_ad(bodies=["Kollagen Elastin"])]
    assert generate_keywords(ads, "Glow25").keywords == []


def test_generate_keywords_respects_limit(make_ad):
    ads = [make_ad(bodies=["Kollagen Hyaluron Elastin Trinkampullen"]) for _ in range(5)]
    assert generate_keywords(ads, "Glow25", max_keywords=2).keywords == ["kollagen", "hyaluron"]


def test_parse_keyword_lines():
    text = "Kollagen Drink\n- Hyaluron\n1. Nummeriert\nab\n• Elastin\n\n" + "x" * 41
    assert parse_keyword_lines(text, 10) == ["Kollagen Drink", "Hyaluron", "Elastin"]
    assert parse_keyword_lines(text, 1) == ["Kollagen Drink"]


def test_prompt_carries_brand_and_candidates():
    prompt = build_prompt(["kollagen", "hyaluron"], "Glow25", "Glow25 Official", 5)
    assert '"Glow25"' in prompt
    assert "Glow25 Official" in prompt
    assert "kollagen, hyaluron" in prompt


def test_refiner_unavailable_without_key():
    assert GeminiKeywordRefiner(api_key=None).refine(["kollagen"], "Glow25", "Glow25", 5) is None
    assert GeminiKeywordRefiner(api_key="k").refine([], "Glow25", "Glow25", 5) is None
