"""Tests for relevance scoring and score-set operations."""

import pytest

from blastradius.models import ScoredFile, ScoringPolicy, SearchDoc, SymbolEntry
from blastradius.scoring import (
    RelevanceScorer,
    compute_raw_score,
    filter_by_threshold,
    finalize_scores,
    merge_scored,
    normalize_scores,
    sort_by_score,
)


class TestComputeRawScore:
    """Tests for the weighted, decayed score formula."""

    def test_terms_only(self):
        """Test term hits use the term weight."""
        assert compute_raw_score(2, 0, 0) == pytest.approx(0.8)

    def test_symbols_only(self):
        """Test symbol hits use the symbol weight."""
        assert compute_raw_score(0, 3, 0) == pytest.approx(1.8)

    def test_decay_per_hop(self):
        """Test each hop halves the score."""
        assert compute_raw_score(1, 1, 2) == pytest.approx(0.25)

    def test_custom_policy(self):
        """Test weights come from the supplied policy."""
        policy = ScoringPolicy(term_weight=1.0, symbol_weight=2.0, depth_decay=0.1)
        assert compute_raw_score(1, 1, 1, policy) == pytest.approx(0.3)


class TestRelevanceScorer:
    """Tests for document and symbol scoring."""

    def test_document_terms(self):
        """Test tokens matched in a document's path, tags or text are counted."""
        doc = SearchDoc(id="1", file="src/api/user.ts", tags=["api"], text="fetch user profile")
        scored = RelevanceScorer().score_documents(["user", "profile", "avatar"], [doc])
        assert len(scored) == 1
        assert scored[0].path == "src/api/user.ts"
        assert scored[0].score == pytest.approx(0.8)
        assert scored[0].matched_terms == {"user", "profile"}

    def test_document_without_matches_is_skipped(self):
        """Test documents with no overlapping token produce no entry."""
        doc = SearchDoc(id="1", file="src/utils/date.ts", text="format dates")
        assert RelevanceScorer().score_documents(["avatar"], [doc]) == []

    def test_exact_symbol_match_counts_twice(self):
        """Test a token equal to a symbol name outranks a substring hit."""
        index = {"UserProfile": SymbolEntry(file="src/components/UserProfile.tsx")}
        scored = RelevanceScorer().score_symbols(["userprofile"], index)
        assert scored[0].score == pytest.approx(1.2)
        assert scored[0].matched_symbols == {"UserProfile"}

    def test_substring_symbol_match_counts_once(self):
        """Test a token inside a longer symbol name is a single hit."""
        index = {"fetchUserProfile": SymbolEntry(file="src/api/userService.ts")}
        scored = RelevanceScorer().score_symbols(["userprofile"], index)
        assert scored[0].score == pytest.approx(0.6)

    def test_symbol_containment_both_directions(self):
        """Test tokens inside a symbol name and symbols inside a token both match."""
        index = {"User": SymbolEntry(file="src/types/user.ts")}
        scored = RelevanceScorer().score_symbols(["users", "us", "avatar"], index)
        assert scored[0].matched_terms == {"users", "us"}
        assert scored[0].score == pytest.approx(1.2)

    def test_empty_tokens_yield_nothing(self):
        """Test an empty token set is the no-signal outcome."""
        doc = SearchDoc(id="1", file="src/a.ts", text="anything")
        index = {"Thing": SymbolEntry(file="src/a.ts")}
        assert RelevanceScorer().score([], [doc], index) == []

    def test_score_combines_sources(self):
        """Test document and symbol entries are both returned before merging."""
        doc = SearchDoc(id="1", file="src/a.ts", text="avatar")
        index = {"Avatar": SymbolEntry(file="src/a.ts")}
        scored = RelevanceScorer().score(["avatar"], [doc], index)
        assert [s.path for s in scored] == ["src/a.ts", "src/a.ts"]


class TestScoreSetOperations:
    """Tests for merge, normalise, filter and sort."""

    def test_merge_keeps_max_and_unions_evidence(self):
        """Test duplicate paths collapse to the strongest score with combined evidence."""
        entries = [
            ScoredFile(path="a", score=0.4, matched_terms={"x"}, hop_distance=1),
            ScoredFile(path="a", score=0.9, matched_symbols={"A"}, hop_distance=0),
            ScoredFile(path="b", score=0.1),
        ]
        merged = merge_scored(entries)
        assert [m.path for m in merged] == ["a", "b"]
        assert merged[0].score == 0.9
        assert merged[0].matched_terms == {"x"}
        assert merged[0].matched_symbols == {"A"}
        assert merged[0].hop_distance == 0

    def test_merge_is_idempotent(self):
        """Test merging an already merged set changes nothing."""
        entries = [ScoredFile(path="a", score=0.4), ScoredFile(path="a", score=0.2), ScoredFile(path="b", score=0.3)]
        once = merge_scored(entries)
        twice = merge_scored(once)
        assert [(e.path, e.score) for e in once] == [(e.path, e.score) for e in twice]

    def test_merge_does_not_mutate_input(self):
        """Test input entries are left untouched."""
        first = ScoredFile(path="a", score=0.4, matched_terms={"x"})
        merge_scored([first, ScoredFile(path="a", score=0.9, matched_terms={"y"})])
        assert first.score == 0.4
        assert first.matched_terms == {"x"}

    def test_normalize_top_is_one(self):
        """Test the highest score becomes exactly 1.0 and others scale with it."""
        result = normalize_scores([ScoredFile(path="a", score=2.4), ScoredFile(path="b", score=0.6)])
        assert result[0].score == 1.0
        assert result[1].score == pytest.approx(0.25)

    def test_normalize_all_zero(self):
        """Test an all-zero set is returned without dividing by zero."""
        result = normalize_scores([ScoredFile(path="a", score=0.0)])
        assert result[0].score == 0.0

    def test_normalize_empty(self):
        """Test an empty set stays empty."""
        assert normalize_scores([]) == []

    def test_filter_threshold_inclusive_and_positive(self):
        """Test scores equal to the threshold are kept and zero scores are dropped."""
        entries = [ScoredFile(path="a", score=0.05), ScoredFile(path="b", score=0.049), ScoredFile(path="c", score=0.0)]
        assert [e.path for e in filter_by_threshold(entries, 0.05)] == ["a"]
        assert [e.path for e in filter_by_threshold(entries, 0.0)] == ["a", "b"]

    def test_sort_by_score_then_path(self):
        """Test ties are broken by ascending path."""
        entries = [ScoredFile(path="b", score=0.5), ScoredFile(path="a", score=0.5), ScoredFile(path="c", score=0.9)]
        assert [e.path for e in sort_by_score(entries)] == ["c", "a", "b"]

    def test_finalize_caps_file_count(self):
        """Test the final list respects max_impact_files."""
        policy = ScoringPolicy(max_impact_files=3)
        entries = [ScoredFile(path=f"f{i:02d}", score=1.0 + i) for i in range(10)]
        result = finalize_scores(entries, policy)
        assert [e.path for e in result] == ["f09", "f08", "f07"]
        assert result[0].score == 1.0
