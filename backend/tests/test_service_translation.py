"""Tests for lemma translation lookup and in-text annotation."""
import pytest

from storybook.services.translation import (
    NO_TRANSLATION,
    inject_translations,
    lookup,
    normalize_locale,
)


class TestNormalizeLocale:
    @pytest.mark.parametrize(
        "locale,expected",
        [("zh-CN", "zh"), ("pt_BR", "pt"), ("ES", "es"), ("", NO_TRANSLATION), (None, NO_TRANSLATION)],
    )
    def test_normalizes(self, locale, expected: str) -> None:
        assert normalize_locale(locale) == expected


class TestLookup:
    def test_known_lemma(self) -> None:
        assert lookup("resilient", "zh-CN") == "坚韧的"
        assert lookup("Courage", "es") == "valentía"

    def test_unknown_lemma_or_locale(self) -> None:
        assert lookup("zzz", "es") is None
        assert lookup("resilient", "xx") is None


class TestInjectTranslations:
    def test_annotates_first_emphasised_occurrence(self) -> None:
        pages = ["She was **resilient** and resilient again."]
        result = inject_translations(pages, ["resilient"], "zh")
        assert result == ["She was **resilient** (坚韧的) and resilient again."]

    def test_only_first_page_annotated(self) -> None:
        pages = ["A **resilient** girl.", "Still resilient."]
        result = inject_translations(pages, ["resilient"], "es")
        assert result == ["A **resilient** (resistente) girl.", "Still resilient."]

    def test_first_occurrence_on_later_page(self) -> None:
        pages = ["Nothing here.", "She showed courage."]
        result = inject_translations(pages, ["courage"], "de")
        assert result == ["Nothing here.", "She showed courage (Mut)."]

    def test_existing_annotation_not_duplicated(self) -> None:
        pages = ["A **resilient** (坚韧的) girl."]
        assert inject_translations(pages, ["resilient"], "zh") == pages

    def test_none_locale_is_noop(self) -> None:
        pages = ["A **resilient** girl."]
        assert inject_translations(pages, ["resilient"], "none") == pages

    def test_unknown_lemma_skipped(self) -> None:
        pages = ["A **mysterious** girl."]
        assert inject_translations(pages, ["mysterious"], "es") == pages

    def test_input_not_mutated(self) -> None:
        pages = ["A **resilient** girl."]
        inject_translations(pages, ["resilient"], "es")
        assert pages == ["A **resilient** girl."]
