"""Tests against the rule files shipped in conniebot/data/x2i.

WHY: The bundled notations are what users see first. Each file must
compile, and a few well-known conversions must keep working when rules
are added or reordered.
"""

import pytest

from conniebot.config import BUNDLED_X2I_DIR
from conniebot.x2i import build_engine


@pytest.fixture(scope="module")
def engine():
    return build_engine(BUNDLED_X2I_DIR)


@pytest.mark.parametrize("text, expected", [
    ('x/h@"loU/', "/həˈloʊ/"),
    ("x[r\\`]", "[ɻ]"),
    ("x/r\\/", "/ɹ/"),
    ("x/tS/", "/tʃ/"),
    ("x[{bi:]", "[æbiː]"),
    ("k/T&N/", "/θæŋ/"),
    ("k/t<h>/", "/tʰ/"),
    ("p/\\sw/", "/ə/"),
    ("p[\\sh\\ic p]", "[ʃɪ p]"),
])
def test_known_conversions(engine, text, expected):
    assert engine.search(text) == [expected]


def test_one_line_per_notation(engine):
    assert engine.search("x/S/ k/S/ x[S]") == ["/ʃ/ [ʃ]", "/ʃ/"]


def test_plain_text_is_ignored(engine):
    assert engine.search("max/min and a k-pop /r/ link") == []


def test_alphabet_list(engine):
    assert engine.alphabet_list == "`k`: Kirshenbaum\n`p`: Praat\n`x`: X-SAMPA"
