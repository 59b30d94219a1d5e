"""
Normalizzazione delle etichette di /fixtures/statistics.
API-Football non garantisce nomi stabili ("Corner Kicks" vs "Corners", "expected_goals" vs "xG"):
ogni variante nota viene mappata sul campo canonico, una volta sola, nel client.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LABEL_SYNONYMS: dict[str, str] = {
    "corner kicks": "corners",
    "corners": "corners",
    "corner": "corners",
    "yellow cards": "yellow_cards",
    "yellow card": "yellow_cards",
    "yellow": "yellow_cards",
    "red cards": "red_cards",
    "red card": "red_cards",
    "red": "red_cards",
    "expected goals": "xg",
    "expected_goals": "xg",
    "xg": "xg",
}

# Ultima risorsa: sottostringa nel label (es. "Total Corner Kicks")
SUBSTRING_FALLBACK: list[tuple[str, str]] = [
    ("corner", "corners"),
    ("yellow", "yellow_cards"),
    ("red", "red_cards"),
    ("expected", "xg"),
]


def _normalize_label(label: str) -> str:
    return " ".join(label.replace("_", " ").lower().split())


def canonical_field(label: str | None) -> str | None:
    """Campo canonico per un'etichetta del provider, None se sconosciuta."""
    if not label:
        return None
    key = _normalize_label(label)
    field = LABEL_SYNONYMS.get(key) or LABEL_SYNONYMS.get(key.replace(" ", "_"))
    if field:
        return field
    for needle, candidate in SUBSTRING_FALLBACK:
        if needle in key:
            logger.warning(
                "Etichetta statistica non riconosciuta %r: uso fallback per sottostringa -> %s",
                label, candidate,
            )
            return candidate
    return None


def stat_number(value: Any) -> float | None:
    """Valore numerico di una statistica: None, "", "12", "0.87", "45%"."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().rstrip("%")
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def normalize_statistics(items: list[dict[str, Any]]) -> dict[str, float | None]:
    """
    Da [{type, value}, ...] a {corners, yellow_cards, red_cards, xg}.
    Le etichette esatte hanno precedenza sul fallback per sottostringa.
    """
    exact: dict[str, float | None] = {}
    fuzzy: dict[str, float | None] = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        label = item.get("type")
        if not isinstance(label, str):
            continue
        key = _normalize_label(label)
        value = stat_number(item.get("value"))
        field = LABEL_SYNONYMS.get(key) or LABEL_SYNONYMS.get(key.replace(" ", "_"))
        if field:
            exact[field] = value
            continue
        field = canonical_field(label)
        if field and field not in fuzzy:
            fuzzy[field] = value
    return {**fuzzy, **exact}
