from olly.knowledge.text import contains_phrase, normalize, starts_any_word, token_set, tokenize


def test_normalize_collapses_punctuation_and_case():
    assert normalize("  Check-in & Check-OUT?! ") == "check in check out"
    assert normalize("snake_case__words") == "snake case words"


def test_normalize_keeps_unicode_letters():
    assert normalize("Doručak u 7:30") == "doručak u 7 30"


def test_normalize_is_total():
    assert normalize(None) == ""
    assert normalize("") == ""
    assert tokenize(None) == []
    assert tokenize(" ,.; ") == []


def test_tokenize_and_token_set():
    assert tokenize("King-size bed, please") == ["king", "size", "bed", "please"]
    assert token_set("bed bed BED") == {"bed"}


def test_contains_phrase_respects_token_boundaries():
    text = normalize("Which rooms do you have?")
    assert contains_phrase(text, "rooms do you have")
    assert not contains_phrase(text, "room")


def test_starts_any_word_matches_prefixes_not_infixes():
    assert starts_any_word("gdje je parkiralište", ["parkir"]) == "parkir"
    assert starts_any_word("is there parking", ["king"]) is None
