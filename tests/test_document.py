"""Tests for the document query layer."""

from helsinki_deals.ingest.document import collapse_whitespace, parse_document

HTML = """
<html>
<head><title> Kesäale | Shop </title><style>.promo { color: red }</style></head>
<body>
  <script>window.banner = "sale -90%";</script>
  <nav id="main-nav"><a href="/ale">Ale</a><a>Ei linkkiä</a></nav>
  <h1>  Suuri   kesäale </h1>
  <div data-testid="PromoBanner"><p>Jopa -50%</p></div>
  <noscript>Ota JavaScript käyttöön</noscript>
</body>
</html>
"""


def test_non_content_nodes_removed():
    """Scripts, styles and noscript never contribute text."""
    document = parse_document(HTML)
    tags = {el.tag for el in document.elements()}

    assert "script" not in tags
    assert "style" not in tags
    assert "noscript" not in tags
    assert all("window.banner" not in el.text() for el in document.elements())


def test_title_and_heading():
    document = parse_document(HTML)

    assert document.title() == "Kesäale | Shop"
    assert document.first_heading() == "Suuri kesäale"


def test_queries():
    """Role and attribute-substring queries."""
    document = parse_document(HTML)

    assert [el.text() for el in document.by_role(["h1"])] == ["Suuri kesäale"]
    promos = document.by_attribute_substring(["promo"])
    assert [el.tag for el in promos] == ["div"]
    assert promos[0].text() == "Jopa -50%"
    assert [el.attr("href") for el in document.anchors()] == ["/ale"]


def test_ancestors():
    """Elements know whether they sit inside a region."""
    document = parse_document(HTML)
    anchor = document.anchors()[0]
    paragraph = document.by_role(["p"])[0]

    assert anchor.has_ancestor(["nav"])
    assert not paragraph.has_ancestor(["nav"])
    assert paragraph.parent().tag == "div"
    assert document.by_role(["nav"])[0].has_descendant(["a"])


def test_elements_in_document_order():
    document = parse_document(HTML)
    body_tags = [el.tag for el in document.elements() if el.tag in ("nav", "h1", "div", "p")]

    assert body_tags == ["nav", "h1", "div", "p"]


def test_empty_input():
    """Missing markup gives an empty document rather than an error."""
    document = parse_document(None)

    assert document.title() == ""
    assert document.anchors() == []
    assert document.first_heading() == ""


def test_collapse_whitespace():
    assert collapse_whitespace("  a \n\t b  ") == "a b"
    assert collapse_whitespace(None) == ""
