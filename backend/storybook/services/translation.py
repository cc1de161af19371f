"""Static lemma translations and in-text annotation."""
import re
from typing import Optional

NO_TRANSLATION = "none"

TRANSLATIONS: dict[str, dict[str, str]] = {
    "es": {
        "resilient": "resistente", "abundant": "abundante", "courage": "valentía",
        "catalyst": "catalizador", "ambiguous": "ambiguo", "empirical": "empírico",
        "comprehensive": "integral", "paradigm": "paradigma", "hypothesis": "hipótesis",
        "synthesis": "síntesis", "phenomenon": "fenómeno", "substantial": "sustancial",
        "correlation": "correlación", "inevitable": "inevitable", "unprecedented": "sin precedentes",
        "configuration": "configuración", "plausible": "plausible", "coherent": "coherente",
        "fluctuation": "fluctuación", "serendipity": "serendipia", "ephemeral": "efímero",
        "ubiquitous": "omnipresente", "knowledge": "conocimiento", "vocabulary": "vocabulario",
    },
    "fr": {
        "resilient": "résilient", "abundant": "abondant", "courage": "courage",
        "catalyst": "catalyseur", "ambiguous": "ambigu", "empirical": "empirique",
        "comprehensive": "complet", "paradigm": "paradigme", "hypothesis": "hypothèse",
        "synthesis": "synthèse", "phenomenon": "phénomène", "substantial": "substantiel",
        "correlation": "corrélation", "inevitable": "inévitable", "unprecedented": "sans précédent",
        "configuration": "configuration", "plausible": "plausible", "coherent": "cohérent",
        "fluctuation": "fluctuation", "serendipity": "sérendipité", "ephemeral": "éphémère",
        "ubiquitous": "omniprésent", "knowledge": "connaissance", "vocabulary": "vocabulaire",
    },
    "de": {
        "resilient": "widerstandsfähig", "abundant": "reichlich", "courage": "Mut",
        "catalyst": "Katalysator", "ambiguous": "mehrdeutig", "empirical": "empirisch",
        "comprehensive": "umfassend", "paradigm": "Paradigma", "hypothesis": "Hypothese",
        "synthesis": "Synthese", "phenomenon": "Phänomen", "substantial": "wesentlich",
        "correlation": "Korrelation", "inevitable": "unvermeidlich", "unprecedented": "beispiellos",
        "configuration": "Konfiguration", "plausible": "plausibel", "coherent": "kohärent",
        "fluctuation": "Schwankung", "serendipity": "glücklicher Zufall", "ephemeral": "vergänglich",
        "ubiquitous": "allgegenwärtig", "knowledge": "Wissen", "vocabulary": "Wortschatz",
    },
    "it": {
        "resilient": "resiliente", "abundant": "abbondante", "courage": "coraggio",
        "catalyst": "catalizzatore", "ambiguous": "ambiguo", "empirical": "empirico",
        "comprehensive": "completo", "paradigm": "paradigma", "hypothesis": "ipotesi",
        "synthesis": "sintesi", "phenomenon": "fenomeno", "substantial": "sostanziale",
        "correlation": "correlazione", "inevitable": "inevitabile", "unprecedented": "senza precedenti",
        "plausible": "plausibile", "coherent": "coerente", "ephemeral": "effimero",
        "knowledge": "conoscenza",
    },
    "pt": {
        "resilient": "resiliente", "abundant": "abundante", "courage": "coragem",
        "catalyst": "catalisador", "ambiguous": "ambíguo", "empirical": "empírico",
        "comprehensive": "abrangente", "paradigm": "paradigma", "hypothesis": "hipótese",
        "synthesis": "síntese", "phenomenon": "fenômeno", "substantial": "substancial",
        "correlation": "correlação", "inevitable": "inevitável", "unprecedented": "sem precedentes",
        "plausible": "plausível", "coherent": "coerente", "ephemeral": "efêmero",
        "knowledge": "conhecimento",
    },
    "zh": {
        "resilient": "坚韧的", "abundant": "丰富的", "courage": "勇气",
        "catalyst": "催化剂", "ambiguous": "模棱两可的", "empirical": "经验主义的",
        "comprehensive": "全面的", "paradigm": "范式", "hypothesis": "假设",
        "synthesis": "综合", "phenomenon": "现象", "substantial": "大量的",
        "correlation": "相关性", "inevitable": "不可避免的", "unprecedented": "前所未有的",
        "configuration": "配置", "plausible": "似乎合理的", "coherent": "连贯的",
        "fluctuation": "波动", "knowledge": "知识",
    },
    "ja": {
        "resilient": "回復力のある", "abundant": "豊富な", "courage": "勇気",
        "catalyst": "触媒", "ambiguous": "曖昧な", "empirical": "経験的な",
        "comprehensive": "包括的な", "paradigm": "パラダイム", "hypothesis": "仮説",
        "synthesis": "統合", "phenomenon": "現象", "inevitable": "避けられない",
        "unprecedented": "前例のない", "coherent": "一貫した", "knowledge": "知識",
    },
    "ko": {
        "resilient": "회복력 있는", "abundant": "풍부한", "courage": "용기",
        "catalyst": "촉매", "ambiguous": "모호한", "empirical": "경험적인",
        "comprehensive": "포괄적인", "paradigm": "패러다임", "hypothesis": "가설",
        "synthesis": "종합", "phenomenon": "현상", "inevitable": "불가피한",
        "unprecedented": "전례 없는", "coherent": "일관된", "knowledge": "지식",
    },
}


def normalize_locale(locale: Optional[str]) -> str:
    """'zh-CN' -> 'zh'; empty or None -> 'none'."""
    if not locale:
        return NO_TRANSLATION
    return locale.strip().lower().split("-")[0].split("_")[0] or NO_TRANSLATION


def lookup(lemma: str, locale: Optional[str]) -> Optional[str]:
    """Translation of `lemma` for `locale`, or None when unknown."""
    table = TRANSLATIONS.get(normalize_locale(locale), {})
    return table.get(lemma.lower())


def _occurrence_pattern(lemma: str) -> re.Pattern:
    # Emphasised form (**lemma**) or the bare word.
    escaped = re.escape(lemma)
    return re.compile(rf"\*\*{escaped}\*\*|\b{escaped}\b", re.IGNORECASE)


def inject_translations(
    page_texts: list[str], lemmas: list[str], locale: Optional[str]
) -> list[str]:
    """Annotate the first occurrence of each lemma across the pages.

    `**resilient**` becomes `**resilient** (resistente)`. A first occurrence
    that already carries the annotation is left alone, and later occurrences
    are never annotated. Lemmas missing from the locale's table are skipped.
    """
    if normalize_locale(locale) == NO_TRANSLATION:
        return list(page_texts)

    texts = list(page_texts)
    for lemma in lemmas:
        translation = lookup(lemma, locale)
        if translation is None:
            continue
        annotation = f" ({translation})"
        pattern = _occurrence_pattern(lemma)
        for index, text in enumerate(texts):
            match = pattern.search(text)
            if match is None:
                continue
            if not text[match.end():].startswith(annotation):
                texts[index] = text[: match.end()] + annotation + text[match.end():]
            break
    return texts
