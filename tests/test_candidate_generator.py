"""Tests for fuzzy scoring and bigram re-ranking."""

import itertools

import pytest
from Levenshtein import distance

from typo_ime.bigram import BigramTable
from typo_ime.candidate_generator import CandidateGenerator, similarity
from typo_ime.index_builder import build_search_index

WORDS = ["", "ni", "nin", "li", "hao", "haoo", "zhong", "你好"]


class TestDistanceProperties:
    """Edit distance and similarity invariants."""

    def test_symmetry_and_identity(self):
        for a, b in itertools.product(WORDS, repeat=2):
            assert distance(a, b) == distance(b, a)
        for a in WORDS:
            assert distance(a, a) == 0

    def test_triangle_inequality(self):
        for a, b, c in itertools.product(WORDS, repeat=3):
            assert distance(a, b) <= distance(a, c) + distance(c, b)

    def test_similarity_in_unit_interval(self):
        for a, b in itertools.product(WORDS, repeat=2):
            assert 0.0 <= similarity(a, b) <= 1.0

    def test_similarity_of_empty_strings(self):
        assert similarity("", "") == 1.0
        assert similarity("", "ni") == 0.0

    def test_similarity_value(self):
        assert similarity("ni", "nin") == pytest.approx(1 - 1 / 3)


class TestSearch:
    """Test CandidateGenerator.search."""

    def test_digits_are_stripped_before_scoring(self):
        generator = CandidateGenerator(build_search_index([
            {"pinyin": "ni3", "hanzi": "你"},
            {"pinyin": "li3", "hanzi": "李"},
        ]))

        results = generator.search("ni", key="pinyin", threshold=0.3)

        assert results[0].hanzi == "你"
        assert results[0].similarity_score == 1.0
        assert results[0].bigram_score == 0.0
        assert [r.hanzi for r in results] == ["你", "李"]

    def test_bigram_breaks_similarity_ties(self):
        generator = CandidateGenerator(
            build_search_index([
                {"pinyin": "abcdx", "hanzi": "们"},
                {"pinyin": "abcdy", "hanzi": "好"},
            ]),
            BigramTable({"你": {"好": 0.9, "们": 0.05}}),
        )

        results = generator.search("abcde", threshold=0.5, previous_context_char="你")

        assert [r.similarity_score for r in results] == [pytest.approx(0.8)] * 2
        assert [r.hanzi for r in results] == ["好", "们"]
        assert results[0].bigram_score == 0.9

    def test_zero_tolerance_only_scans_exact_length(self):
        generator = CandidateGenerator(build_search_index([
            {"pinyin": "nin2", "hanzi": "您"},
            {"pinyin": "ni3", "hanzi": "你"},
        ]))

        results = generator.search("ni", threshold=0.5, length_tolerance=0)

        assert [r.hanzi for r in results] == ["你"]
        assert [r.hanzi for r in generator.search("ni", threshold=0.5, length_tolerance=1)] == ["你", "您"]

    def test_results_stay_inside_length_window(self, generator):
        for tolerance in range(0, 4):
            for result in generator.search("nihao", threshold=0.0, length_tolerance=tolerance):
                assert abs(len(result.record.searchable_pinyin) - 5) <= tolerance

    def test_huge_tolerance_scans_existing_buckets(self, generator):
        assert generator.candidate_lengths("pinyin", 2, 10**12) == sorted(generator.index["pinyin"])

        results = generator.search("ni", threshold=0.0, length_tolerance=10**12)

        assert {r.hanzi for r in results} == {r.hanzi for r in generator.search("ni", threshold=0.0, length_tolerance=20)}

    def test_results_are_sorted(self, generator):
        results = generator.search("ni", threshold=0.0, length_tolerance=4, previous_context_char="我")

        assert results
        for a, b in zip(results, results[1:]):
            assert a.similarity_score >= b.similarity_score
            if a.similarity_score == b.similarity_score:
                assert a.bigram_score >= b.bigram_score

    def test_full_ties_keep_insertion_order(self):
        generator = CandidateGenerator(build_search_index([
            {"pinyin": "ta1", "hanzi": "他"},
            {"pinyin": "ta1", "hanzi": "她"},
            {"pinyin": "ta1", "hanzi": "它"},
        ]))

        assert [r.hanzi for r in generator.search("ta")] == ["他", "她", "它"]

    def test_threshold_filters(self, generator):
        results = generator.search("ni", threshold=0.9)

        assert [r.hanzi for r in results] == ["你"]

    def test_hanzi_key(self, generator):
        results = generator.search("你好", key="hanzi", threshold=0.5)

        assert results[0].hanzi == "你好"
        assert results[0].similarity_score == 1.0

    def test_records_without_hanzi_are_skipped(self, generator):
        assert generator.search("xx", threshold=1.0) == []

    def test_unknown_context_gives_zero_bigram(self, generator):
        results = generator.search("hao", previous_context_char="他")

        assert results and all(r.bigram_score == 0.0 for r in results)

    def test_context_uses_hanzi_even_for_pinyin_match(self, generator):
        results = generator.search("men", previous_context_char="我")

        assert results[0].hanzi == "们"
        assert results[0].bigram_score == 0.6

    def test_query_is_lowercased(self, generator):
        assert generator.search("NI", threshold=1.0)[0].hanzi == "你"

    @pytest.mark.parametrize("query, key", [("", "pinyin"), ("ni", "english"), (None, "pinyin")])
    def test_invalid_requests_return_empty(self, generator, query, key):
        assert generator.search(query, key=key) == []

    def test_empty_index_returns_empty(self):
        assert CandidateGenerator(build_search_index([])).search("ni") == []

    def test_defaults(self, generator):
        # threshold 0.6 excludes "li" (0.5); tolerance 2 reaches length-4 but not "ni hao"
        assert [r.hanzi for r in generator.search("ni")] == ["你"]

    def test_records_timings(self, generator):
        generator.search("ni")
        timings = generator.get_last_timings()

        assert set(timings) == {"select_buckets", "scoring", "sort", "total"}
        assert timings["total"] >= 0

    def test_slow_search_logs_warning(self, sample_records, caplog):
        generator = CandidateGenerator(build_search_index(sample_records), slow_search_ms=-1)

        with caplog.at_level("WARNING", logger="typo_ime.candidate_generator"):
            generator.search("ni")

        assert "took" in caplog.text
