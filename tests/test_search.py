from types import SimpleNamespace

from mediaplayer.lib.search import filter_by_name, matches, to_search_expression_parts


def test_expression_parts_are_normalised():
    assert to_search_expression_parts("  Daft\tPUNK  daft \nlive\r") == ["daft", "punk", "live"]
    assert to_search_expression_parts("") == []
    assert to_search_expression_parts(None) == []


def test_line_breaks_are_removed_not_split():
    assert to_search_expression_parts("daft\nlive") == ["daftlive"]
    assert to_search_expression_parts("around\r\nthe world") == ["aroundthe", "world"]


def test_all_parts_must_match():
    assert matches("Daft Punk - Around the World", ["punk", "world"])
    assert not matches("Daft Punk - Around the World", ["punk", "moon"])
    assert matches("anything", [])
    assert not matches(None, ["x"])


def test_filter_by_name_keeps_order():
    items = [SimpleNamespace(name=n) for n in ("Rock Classics", "Jazz", "classic rock", "Pop")]
    assert [i.name for i in filter_by_name(items, "ROCK")] == ["Rock Classics", "classic rock"]
    assert len(filter_by_name(items, "")) == 4
