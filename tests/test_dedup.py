from fentrix.news.dedup import (
    clean_summary,
    clean_title,
    generate_fingerprint,
    has_overlapping_keywords,
    is_title_similar,
    is_word_overlap_duplicate,
    short_fingerprint,
)


class TestCleaning:
    def test_clean_title_strips_markdown(self):
        assert clean_title("# **Fed Holds Rates Steady**:") == "Fed Holds Rates Steady"

    def test_clean_title_handles_none(self):
        assert clean_title(None) == ""

    def test_clean_summary_removes_heading_and_escaped_newlines(self):
        summary = "## **Summary** Rates were left unchanged.\\nMarkets cheered."
        assert clean_summary(summary) == "Rates were left unchanged. Markets cheered."


class TestFingerprints:
    def test_generate_fingerprint_sorts_significant_words(self):
        fingerprint = generate_fingerprint("Bitcoin Price Jumps", "Traders react to the rally", "crypto")
        assert fingerprint == "bitcoin-jumps-price-rally-react-traders-crypto"

    def test_generate_fingerprint_is_order_insensitive(self):
        first = generate_fingerprint("Bitcoin Price Jumps", "", "crypto")
        second = generate_fingerprint("Jumps Price Bitcoin", "", "crypto")
        assert first == second

    def test_generate_fingerprint_limits_summary_words(self):
        summary = " ".join(f"word{i:02d}" for i in range(20))
        fingerprint = generate_fingerprint("", summary, "finance")
        assert "word09" in fingerprint
        assert "word10" not in fingerprint

    def test_short_fingerprint_replaces_non_alphanumerics(self):
        assert short_fingerprint("Apple & Microsoft Lead!", "tech") == "apple---microsoft-lead--tech"

    def test_short_fingerprint_truncates_title(self):
        title = "A" * 80
        assert short_fingerprint(title, "energy") == "a" * 50 + "-energy"


class TestSimilarity:
    def test_short_titles_need_exact_match(self):
        assert is_title_similar("fed news", "fed news")
        assert not is_title_similar("fed news", "fed newz")

    def test_containment_is_similar(self):
        assert is_title_similar("bitcoin hits record high", "bitcoin hits record high as etf flows surge")

    def test_word_ratio_threshold(self):
        assert is_title_similar(
            "nvidia shares surge after earnings beat",
            "after earnings beat nvidia shares climb",
        )
        assert not is_title_similar(
            "nvidia shares surge after earnings beat",
            "oil prices slide amid supply worries today",
        )

    def test_too_few_significant_words(self):
        assert not is_title_similar("the big day for us all", "a big day for the rest")

    def test_overlapping_keywords_needs_three_matches(self):
        assert has_overlapping_keywords(
            "federal reserve raises interest rates again",
            "markets react as federal reserve lifts interest rates",
        )
        assert not has_overlapping_keywords("federal reserve meeting", "federal budget meeting")

    def test_word_overlap_duplicate(self):
        assert is_word_overlap_duplicate("Tesla Stock Falls", "tesla stock falls after delivery miss")
        assert is_word_overlap_duplicate(
            "Energy Sector Rises as Exxon Leads",
            "Energy Sector Rises While Exxon Leads Gains",
        )
        assert not is_word_overlap_duplicate("Healthcare stocks slip", "Technology shares rally hard")
