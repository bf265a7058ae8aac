"""测试 HTML 解析工具."""

from feedsync.utils.html_parser import (
    count_words,
    estimate_reading_time,
    extract_main_text,
    html_to_text,
)

LONG_SENTENCE = "This paragraph has enough words to count as real article content. " * 3


class TestHtmlToText:
    """测试 html_to_text."""

    def test_strips_tags_and_scripts(self) -> None:
        """去掉标签和脚本."""
        html = "<div><script>alert(1)</script><h1>Title</h1><p>Body text</p></div>"
        assert html_to_text(html) == "Title\nBody text"

    def test_empty(self) -> None:
        """空输入返回空串."""
        assert html_to_text("") == ""


class TestExtractMainText:
    """测试选择器兜底提取."""

    def test_prefers_article_container(self) -> None:
        """优先使用正文容器."""
        html = (
            "<html><body><nav>Menu</nav>"
            f"<article><p>{LONG_SENTENCE}</p></article>"
            "<footer>Copyright</footer></body></html>"
        )

        text = extract_main_text(html)

        assert text is not None
        assert text.startswith("This paragraph")
        assert "Menu" not in text

    def test_falls_back_to_paragraphs(self) -> None:
        """没有容器时拼接较长的段落."""
        html = (
            "<html><body><div>"
            "<p>Short</p>"
            "<p>First paragraph that is long enough.</p>"
            "<p>Second paragraph that is long enough.</p>"
            "</div></body></html>"
        )

        text = extract_main_text(html)

        assert text == (
            "First paragraph that is long enough.\n\n"
            "Second paragraph that is long enough."
        )

    def test_nothing_to_extract(self) -> None:
        """没有可用正文时返回 None."""
        assert extract_main_text("<html><body><p>Hi</p></body></html>") is None
        assert extract_main_text("") is None


class TestReadingTime:
    """测试字数和阅读时间."""

    def test_count_mixed_text(self) -> None:
        """中文按字、英文按词计数."""
        assert count_words("hello world") == 2
        assert count_words("你好世界") == 4
        assert count_words("RSS 订阅") == 3
        assert count_words("") == 0

    def test_reading_time_minimum(self) -> None:
        """阅读时间至少 1 分钟."""
        assert estimate_reading_time("") == 1
        assert estimate_reading_time("word " * 10) == 1

    def test_reading_time_scales(self) -> None:
        """按每分钟 200 词估算."""
        assert estimate_reading_time("word " * 1000) == 5
