from chapter_ranker import (
    chapter_number, dedupe_chapters, filter_by_language, rank_chapters, sort_by_title,
)
from manga_models import ChapterEntry


def chapters(*titles, language='en'):
    return [ChapterEntry(title=t, url=f"id-{i}", language=language) for i, t in enumerate(titles)]


def test_rank_newest_first():
    ranked = rank_chapters(chapters("Ch.10", "Ch.2 - Intro", "Oneshot", "Ch.10.5"))
    assert [c.title for c in ranked] == ["Ch.10.5", "Ch.10", "Ch.2 - Intro", "Oneshot"]


def test_chapter_number_patterns():
    assert chapter_number("Vol. 1 Ch. 5 - The Beginning") == 5
    assert chapter_number("Vol.3 Ch.12.5") == 12.5
    assert chapter_number("Chapter 7") == 7
    assert chapter_number("Episode 2: Part 3") == 2
    assert chapter_number("Oneshot") == 0
    assert chapter_number("") == 0


def test_rank_is_stable_for_ties():
    ranked = rank_chapters(chapters("Extra A", "Chapter 1", "Extra B", "Ch.1 redux"))
    assert [c.title for c in ranked] == ["Chapter 1", "Ch.1 redux", "Extra A", "Extra B"]


def test_dedupe_keeps_first():
    items = [
        ChapterEntry(title="Ch.1", url="a"),
        ChapterEntry(title="Ch.1 (other group)", url="a"),
        ChapterEntry(title="Ch.2", url="b"),
    ]
    assert [c.title for c in dedupe_chapters(items)] == ["Ch.1", "Ch.2"]
    assert len(rank_chapters(items)) == 2


def test_sort_by_title():
    ordered = sort_by_title(chapters("b side", "Alpha", "beta"))
    assert [c.title for c in ordered] == ["Alpha", "b side", "beta"]


def test_filter_by_language():
    mixed = chapters("One", language='en') + [ChapterEntry(title="Uno", url="es-1", language='ES')]
    assert [c.title for c in filter_by_language(mixed, 'es')] == ["Uno"]
    assert len(filter_by_language(mixed, '')) == 2
    assert len(filter_by_language(mixed, 'all')) == 2
    assert filter_by_language(mixed, 'fr') == []


def test_filter_by_language_keeps_untagged_chapters():
    mixed = [
        ChapterEntry(title="Ch.1", url="a"),
        ChapterEntry(title="Ch.2", url="b", language=''),
        ChapterEntry(title="Ch.3", url="c", language='fr'),
        ChapterEntry(title="Ch.4", url="d", language='en'),
    ]
    assert [c.title for c in filter_by_language(mixed, 'en')] == ["Ch.1", "Ch.2", "Ch.4"]


def test_labeled_number_is_case_sensitive():
    assert chapter_number("Lunch. 3 break, Ch.7") == 7
    assert chapter_number("Vol. 1 Ch. 5") == 5
