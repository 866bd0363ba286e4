"""Tests for transcript keyword highlighting."""
from services.keyword_detection import detect_keywords, top_keywords


def test_counts_whole_words_per_category():
    result = detect_keywords(
        "Entiendo su problema con la tarjeta. Necesito verificar su identidad. "
        "La TARJETA queda bloqueada."
    )

    counts = {m["word"]: m["count"] for m in result["matches"]}
    assert counts == {"tarjeta": 2, "problema": 1, "entiendo": 1, "verificar": 1, "identidad": 1}
    assert result["stats"] == {
        "total_keywords": 6,
        "banking_count": 3,
        "emotional_count": 1,
        "protocol_count": 2,
    }


def test_partial_words_do_not_match():
    # "cuentas" is not "cuenta", "bloqueada" is not "bloqueo"
    result = detect_keywords("Tengo dos cuentas y una tarjeta bloqueada")
    assert result["keywords"] == ["tarjeta"]


def test_accented_keywords():
    result = detect_keywords("Quiero un préstamo y saber la cuota. Comprendo el interés.")
    assert set(result["keywords"]) == {"préstamo", "cuota", "interés", "comprendo"}


def test_empty_transcript():
    result = detect_keywords("")
    assert result["keywords"] == []
    assert result["stats"]["total_keywords"] == 0


def test_top_keywords_orders_by_count():
    matches = [
        {"word": "cuenta", "category": "banking", "count": 1},
        {"word": "fraude", "category": "banking", "count": 4},
        {"word": "lamento", "category": "emotional", "count": 2},
    ]
    assert [m["word"] for m in top_keywords(matches, n=2)] == ["fraude", "lamento"]
