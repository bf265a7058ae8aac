"""HTML 解析工具."""

import re

from bs4 import BeautifulSoup

# 常见正文容器选择器，按优先级排列
CONTENT_SELECTORS = [
    "article",
    ".post-content",
    ".entry-content",
    ".content",
    "main",
    ".article-body",
    "#content",
    ".post-body",
    ".article-content",
    ".post",
    "[role='main']",
]

MIN_BLOCK_LENGTH = 100
MIN_PARAGRAPH_LENGTH = 20


def html_to_text(html: str) -> str:
    """
    将 HTML 转换为纯文本.

    Args:
        html: HTML 内容

    Returns:
        提取的纯文本内容
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "lxml")

    # 移除 script 和 style 标签
    for element in soup(["script", "style", "nav", "footer", "header"]):
        element.decompose()

    text = soup.get_text(separator="\n")

    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(line for line in lines if line)

    return re.sub(r"\n{3,}", "\n\n", text).strip()


def extract_main_text(html: str) -> str | None:
    """
    用选择器从网页中提取正文（trafilatura 失败时的兜底方案）.

    依次尝试常见正文容器，最后退化为拼接所有足够长的 <p> 段落。

    Returns:
        正文文本，提取失败返回 None
    """
    if not html:
        return None

    soup = BeautifulSoup(html, "lxml")
    for element in soup(["script", "style"]):
        element.decompose()

    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = " ".join(node.get_text(separator=" ").split())
        if len(text) > MIN_BLOCK_LENGTH:
            return text

    paragraphs = [
        " ".join(p.get_text(separator=" ").split()) for p in soup.find_all("p")
    ]
    paragraphs = [p for p in paragraphs if len(p) > MIN_PARAGRAPH_LENGTH]
    if paragraphs:
        return "\n\n".join(paragraphs)

    return None


def count_words(text: str) -> int:
    """
    统计文本字数.

    对于中文，按字符计数；对于英文，按单词计数。
    """
    if not text:
        return 0

    chinese_chars = len(re.findall(r"[\u4e00-\u9fff]", text))
    english_text = re.sub(r"[\u4e00-\u9fff]", " ", text)
    english_words = len(english_text.split())

    return chinese_chars + english_words


def estimate_reading_time(text: str, wpm: int = 200) -> int:
    """估算阅读时间（分钟），最小 1."""
    word_count = count_words(text)
    return max(1, round(word_count / wpm))
