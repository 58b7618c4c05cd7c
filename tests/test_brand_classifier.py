"""Tests for analysis/brand_classifier.py."""

import pandas as pd
import pytest

from analysis.brand_classifier import BrandClassifier


def test_word_start_match_is_case_insensitive():
    classifier = BrandClassifier(["Acme"])
    assert classifier.is_branded("ACME login")
    assert classifier.is_branded("acmecorp pricing")
    assert not classifier.is_branded("macme tools")


def test_no_keywords_means_all_generic():
    classifier = BrandClassifier([" ", ""])
    assert classifier.brand_keywords == set()
    assert not classifier.is_branded("anything")


def test_keywords_are_escaped():
    classifier = BrandClassifier(["c++"])
    assert classifier.is_branded("c++ tutorial")
    assert not classifier.is_branded("c tutorial")


def test_classify_dataframe_requires_query_column():
    with pytest.raises(ValueError):
        BrandClassifier(["acme"]).classify_dataframe(pd.DataFrame({"page": ["x"]}))


def test_click_split():
    df = pd.DataFrame({
        "query": ["acme shoes", "red shoes", "blue shoes"],
        "clicks": [25, 50, 25],
        "impressions": [100, 400, 500],
    })
    classifier = BrandClassifier(["acme"])
    split = classifier.get_click_split(classifier.classify_dataframe(df))

    assert split["branded"] == {"queries": 1, "clicks": 25.0, "impressions": 100.0, "click_share_pct": 25.0}
    assert split["generic"]["queries"] == 2
    assert split["generic"]["click_share_pct"] == 75.0


def test_click_split_needs_classification():
    with pytest.raises(ValueError):
        BrandClassifier().get_click_split(pd.DataFrame({"clicks": [1]}))
