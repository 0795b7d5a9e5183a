"""Tests for structural deduplication."""

from component_extractor.dedup import FingerprintIndex, deduplicate, fingerprint, normalize_html, text_sample
from component_extractor.models import ComponentMetadata, Dimensions, ExtractedComponent, Position


def _component(html, score=10.0, width=300, height=200, type_="cards"):
    return ExtractedComponent(
        type=type_,
        name="c",
        html=html,
        clean_html=html,
        metadata=ComponentMetadata(
            tag_name="div",
            dimensions=Dimensions(width=width, height=height),
            position=Position(x=0, y=0),
            importance_score=score,
            source_url="https://example.com/",
        ),
    )


CARD = '<div class="card a1" style="color: red"><h3>Plan</h3><p>$9</p></div>'


class TestNormalize:
    def test_noise_attributes_removed(self):
        assert normalize_html('<div class="x" id="y" style="z">  hi   there </div>') == "<div> hi there </div>"

    def test_style_blocks_removed(self):
        assert normalize_html("<div>a</div><style>.a{}</style>") == "<div>a</div>"

    def test_text_sample(self):
        assert text_sample("<div><h3>One</h3><p>Two</p><p>Three</p><p>Four</p></div>") == ["One", "Two", "Three"]


class TestDeduplicate:
    def test_class_noise_does_not_matter(self):
        other = CARD.replace('class="card a1"', 'class="card b7"').replace("color: red", "color: blue")
        assert fingerprint(_component(CARD)) == fingerprint(_component(other))
        assert len(deduplicate([_component(CARD), _component(other)])) == 1

    def test_first_wins(self):
        first = _component(CARD, score=20)
        kept = deduplicate([first, _component(CARD, score=30)])
        assert kept == [first]

    def test_dimension_buckets(self):
        assert fingerprint(_component(CARD, width=301)) == fingerprint(_component(CARD, width=303))
        assert fingerprint(_component(CARD, width=300)) != fingerprint(_component(CARD, width=340))

    def test_different_text_kept(self):
        other = CARD.replace("$9", "$19")
        assert len(deduplicate([_component(CARD), _component(other)])) == 2

    def test_different_type_kept(self):
        assert len(deduplicate([_component(CARD), _component(CARD, type_="pricing")])) == 2

    def test_high_score_always_kept(self):
        assert len(deduplicate([_component(CARD, score=10), _component(CARD, score=90)])) == 2
        assert len(deduplicate([_component(CARD, score=90), _component(CARD, score=10)])) == 2

    def test_order_preserved(self):
        a, b, c = _component(CARD), _component("<p>x</p>"), _component(CARD)
        assert deduplicate([a, b, c]) == [a, b]

    def test_index_admits_as_components_arrive(self):
        index = FingerprintIndex()
        assert index.admit(_component(CARD)) is True
        assert index.admit(_component(CARD, score=30)) is False
        assert index.admit(_component("<p>x</p>")) is True
        assert index.admit(_component(CARD, score=90)) is True
        assert index.admit(_component(CARD)) is True
