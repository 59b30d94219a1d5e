from __future__ import annotations

import logging

from matchday.services.stat_labels import canonical_field, normalize_statistics, stat_number


def test_known_labels_map_to_canonical_fields():
    assert canonical_field("Corner Kicks") == "corners"
    assert canonical_field("corners") == "corners"
    assert canonical_field("expected_goals") == "xg"
    assert canonical_field("Expected Goals") == "xg"
    assert canonical_field("Yellow Cards") == "yellow_cards"
    assert canonical_field("Ball Possession") is None
    assert canonical_field(None) is None


def test_substring_fallback_logs_a_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="matchday.services.stat_labels"):
        assert canonical_field("Total Corner Kicks Won") == "corners"
    assert "fallback" in caplog.text


def test_exact_label_wins_over_fallback():
    values = normalize_statistics([
        {"type": "Corners Conceded", "value": 9},
        {"type": "Corner Kicks", "value": 4},
    ])
    assert values["corners"] == 4


def test_stat_number_parsing():
    assert stat_number("0.87") == 0.87
    assert stat_number("45%") == 45.0
    assert stat_number(3) == 3.0
    assert stat_number("") is None
    assert stat_number(None) is None
    assert stat_number("n/a") is None
