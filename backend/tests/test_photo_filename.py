"""
Tests unitaires pour les noms de fichiers et clés de stockage.
"""

from datetime import datetime, timezone

import pytest

from photoqc.services.photo_filename import build_photo_filename, content_key, file_extension, to_3char_code


@pytest.mark.parametrize("name,expected", [
    ("Manhole", "MAN"),
    ("Cover level", "COV"),
    ("a-b", "ABX"),
    ("", "XXX"),
    (None, "XXX"),
    ("7 Up", "7UP"),
])
def test_to_3char_code(name, expected):
    assert to_3char_code(name) == expected


@pytest.mark.parametrize("filename,expected", [
    ("IMG_0001.JPG", "jpg"),
    ("photo.jpeg", "jpg"),
    ("scan.png", "png"),
    ("sans_extension", "jpg"),
    (None, "jpg"),
])
def test_file_extension(filename, expected):
    assert file_extension(filename) == expected


def test_nom_complet_horodate_en_heure_locale():
    # 2025-01-15 20:45:10 UTC = 2025-01-16 02:15:10 à Kolkata (UTC+5:30)
    captured = datetime(2025, 1, 15, 20, 45, 10, tzinfo=timezone.utc)

    name = build_photo_filename("R1", "S3", "MAN", "COV", "Ongoing", 2, "jpg", captured_at=captured)

    assert name == "R1-S3-MAN-COV-O-2-20250116-021510.jpg"


def test_cle_de_stockage_prefixee():
    assert content_key("R1-S3-MAN-COV-O-2-20250116-021510.jpg") == "df-photos/R1-S3-MAN-COV-O-2-20250116-021510.jpg"


def test_cle_de_stockage_avec_jeton_avant_l_extension():
    key = content_key("R1-S3-MAN-COV-O-2-20250116-021510.jpg", "a1b2c3d4")
    assert key == "df-photos/R1-S3-MAN-COV-O-2-20250116-021510-a1b2c3d4.jpg"
