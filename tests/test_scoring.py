"""Tests for the importance scorer."""

import pytest

from component_extractor.scoring import WEIGHTS, ElementInfo, ScoreWeights, score


VW, VH = 1920, 1080


def _info(**kwargs):
    kwargs.setdefault("tag", "div")
    kwargs.setdefault("rect", {"x": 0, "y": 2000, "width": 0, "height": 0})
    kwargs.setdefault("classes", [])
    return ElementInfo(**kwargs)


class TestScore:
    def test_empty_node_scores_zero(self):
        assert score(_info(), VW, VH) == 0

    def test_above_fold_decays_with_y(self):
        top = score(_info(rect={"x": 0, "y": 0, "width": 0, "height": 0}), VW, VH)
        middle = score(_info(rect={"x": 0, "y": 540, "width": 0, "height": 0}), VW, VH)
        assert top == WEIGHTS.above_fold
        assert middle == pytest.approx(WEIGHTS.above_fold / 2)

    def test_full_viewport_area(self):
        info = _info(rect={"x": 0, "y": 2000, "width": VW, "height": VH})
        assert score(info, VW, VH) == WEIGHTS.relative_area

    def test_media_counts_once(self):
        assert score(_info(has_image=True, has_background=True), VW, VH) == WEIGHTS.media

    def test_text_saturates(self):
        assert score(_info(text_length=250), VW, VH) == WEIGHTS.text_richness / 2
        assert score(_info(text_length=5000), VW, VH) == WEIGHTS.text_richness

    def test_heading_and_semantic_tag(self):
        assert score(_info(tag="section", has_heading=True), VW, VH) == WEIGHTS.heading + WEIGHTS.semantic_tag

    def test_high_value_prior(self):
        assert score(_info(), VW, VH, is_high_value=True) == WEIGHTS.high_value

    def test_capped_at_100(self):
        info = _info(
            tag="main",
            rect={"x": 0, "y": 0, "width": VW * 3, "height": VH * 3},
            has_image=True,
            has_heading=True,
            text_length=1000,
        )
        assert score(info, VW, VH, is_high_value=True) == 100

    def test_deterministic(self):
        info = _info(rect={"x": 10, "y": 300, "width": 640, "height": 480}, text_length=120, has_heading=True)
        assert score(info, VW, VH) == score(info, VW, VH)

    def test_custom_weights(self):
        weights = ScoreWeights(version="test", heading=50.0)
        assert score(_info(has_heading=True), VW, VH, weights=weights) == 50

    def test_from_raw(self):
        info = ElementInfo.from_raw(
            {"tag": "SECTION", "classes": ["a", "b"], "textLength": "42", "hasHeading": 1, "path": "x"},
            {"x": 0, "y": 0, "width": 10, "height": 10},
        )
        assert info.tag == "section"
        assert info.text_length == 42
        assert info.has_heading is True
        assert info.position == "static"

    def test_from_raw_reads_visibility_facts(self):
        info = ElementInfo.from_raw({"tag": "div", "position": "fixed", "excluded": True})
        assert info.position == "fixed"
        assert info.excluded is True
        assert info.rect == {}
