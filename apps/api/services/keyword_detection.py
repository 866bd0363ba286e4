"""
Keyword detection for simulation transcripts.

Counts whole-word, case-insensitive occurrences of banking, empathy and
protocol vocabulary (Paraguayan Spanish) so the UI can highlight them.
"""
import re
from dataclasses import dataclass, asdict
from typing import Dict, List

BANKING_KEYWORDS = [
    # accounts
    "cuenta", "saldo", "depósito", "retiro", "transferencia", "movimiento",
    # cards
    "tarjeta", "débito", "crédito", "PIN", "CVV", "vencimiento",
    # loans
    "préstamo", "cuota", "interés", "garantía", "refinanciación",
    # security
    "contraseña", "clave", "token", "seguridad", "verificación", "autenticación",
    # fraud / crime
    "fraude", "robo", "estafa", "sospechoso", "bloqueo", "denuncia",
    "lavado", "activos", "ilícito",
    # customer service
    "reclamo", "queja", "consulta", "solicitud", "problema", "solución",
]

EMOTIONAL_KEYWORDS = [
    "disculpe", "lamento", "comprendo", "entiendo", "ayudar", "resolver",
    "tranquilo", "preocupe", "asegurar", "garantizar", "confianza",
]

PROTOCOL_KEYWORDS = [
    "verificar", "confirmar", "documento", "identidad", "DNI", "cédula",
    "autorización", "permiso", "procedimiento", "protocolo", "política",
]

KEYWORD_CATEGORIES = {
    "banking": BANKING_KEYWORDS,
    "emotional": EMOTIONAL_KEYWORDS,
    "protocol": PROTOCOL_KEYWORDS,
}


@dataclass
class KeywordMatch:
    word: str
    category: str
    count: int


def _pattern(keyword: str) -> "re.Pattern[str]":
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


_PATTERNS = {
    keyword: _pattern(keyword)
    for keywords in KEYWORD_CATEGORIES.values()
    for keyword in keywords
}


def detect_keywords(transcript: str) -> Dict:
    """
    Returns:
        {
          "keywords": [word, ...],
          "matches": [{"word", "category", "count"}, ...],
          "stats": {"total_keywords", "banking_count", "emotional_count", "protocol_count"}
        }
    """
    text = transcript or ""
    matches: List[KeywordMatch] = []

    for category, keywords in KEYWORD_CATEGORIES.items():
        for keyword in keywords:
            count = len(_PATTERNS[keyword].findall(text))
            if count:
                matches.append(KeywordMatch(word=keyword, category=category, count=count))

    per_category = {c: sum(m.count for m in matches if m.category == c) for c in KEYWORD_CATEGORIES}

    return {
        "keywords": [m.word for m in matches],
        "matches": [asdict(m) for m in matches],
        "stats": {
            "total_keywords": sum(m.count for m in matches),
            "banking_count": per_category["banking"],
            "emotional_count": per_category["emotional"],
            "protocol_count": per_category["protocol"],
        },
    }


def top_keywords(matches: List[Dict], n: int = 10) -> List[Dict]:
    """Most frequent matches first; ties keep detection order."""
    return sorted(matches, key=lambda m: m["count"], reverse=True)[:n]
