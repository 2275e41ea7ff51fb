from backspace.domain.models import CollectionFilter, ExporterConfig, Whitelist, match_pattern


def test_match_pattern_star_and_exact():
    assert match_pattern("anything", "*")
    assert match_pattern("book_one", "book_one")
    assert not match_pattern("book_one", "book")


def test_match_pattern_glob_is_anchored_and_literal():
    assert match_pattern("bad_scan", "bad_*")
    assert match_pattern("the_bad_one", "*bad*")
    assert not match_pattern("not_bad_scan", "bad_*")
    # dots and other regex characters are literal
    assert match_pattern("v1.2-final", "v1.2*")
    assert not match_pattern("v132-final", "v1.2*")
    assert match_pattern("a.b1", "a.b*")
    assert not match_pattern("axb1", "a.b*")
    assert match_pattern("x+y", "x+y")
    assert not match_pattern("xxy", "x+y")


def test_filter_without_config_allows_everything():
    assert CollectionFilter.from_dict(None).allows("x")


def test_filter_disabled_rejects_everything():
    assert not CollectionFilter.from_dict({"enabled": False, "include": ["*"]}).allows("x")


def test_filter_include_then_exclude():
    f = CollectionFilter.from_dict({"include": ["book_*"], "exclude": ["book_bad*"]})
    assert f.allows("book_one")
    assert not f.allows("book_bad_scan")
    assert not f.allows("magazine_one")


def test_exporter_config_from_dict():
    cfg = ExporterConfig.from_dict(
        {"name": "SpaceCraft", "collections": {"a": {"enabled": False}}, "receiptFileName": "r.json"},
        config_dir="/tmp/x",
    )
    assert cfg.index_deep_file == "index-deep.json"
    assert cfg.receipt_file_name == "r.json"
    assert not cfg.filter_for("a").enabled
    assert cfg.filter_for("missing").enabled


def test_whitelist_accessors():
    wl = Whitelist.from_dict({
        "collectionsIndex": ["a", "b"],
        "collections": {"a": {"itemsIndex": ["i1"], "collection": {"id": "a", "title": "A"}}},
    })
    assert wl.collections_index == ("a", "b")
    assert wl.has("a") and not wl.has("b")
    assert wl.items_for("a") == ["i1"]
    assert wl.items_for("b") == []
    assert wl.collection_for("a") == {"id": "a", "title": "A"}
    assert wl.collection_for("b") is None


def test_whitelist_index_defaults_to_collection_keys():
    wl = Whitelist.from_dict({"collections": {"x": {}, "y": {}}})
    assert wl.collections_index == ("x", "y")
