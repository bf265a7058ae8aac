"""全文提取器（文章内容为空时按需抓取原文）."""

import asyncio
import logging
import re
from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel
from trafilatura import extract, fetch_url
from trafilatura.settings import use_config

from feedsync.config import get_settings
from feedsync.utils.html_parser import extract_main_text

logger = logging.getLogger(__name__)


class FullTextResult(BaseModel):
    """全文抓取结果."""

    success: bool
    content: str | None = None
    word_count: int = 0
    error: str | None = None


class FullTextExtractor:
    """使用 trafilatura 提取网页全文，失败时退化为选择器提取."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._config = use_config()
        # 模拟浏览器 User-Agent 以规避简单的 403
        self._config.set("DEFAULT", "USER_AGENT", get_settings().fetch_user_agent)

    async def fetch(self, url: str) -> FullTextResult:
        """
        抓取指定 URL 的全文.

        trafilatura 是同步库，这里用线程池包装成异步。
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._fetch_sync, url)

    def close(self) -> None:
        """关闭线程池."""
        self._executor.shutdown(wait=False)

    def _fetch_sync(self, url: str) -> FullTextResult:
        try:
            downloaded = fetch_url(url, config=self._config)
            if not downloaded:
                return FullTextResult(
                    success=False,
                    error="下载页面失败 (可能由于 403 或网络限制)",
                )
            return self.extract_from_html(downloaded)
        except Exception as e:
            logger.warning(f"全文提取异常: {url} - {e}")
            return FullTextResult(success=False, error=str(e))

    def extract_from_html(self, html: str) -> FullTextResult:
        """从已下载的 HTML 中提取正文."""
        content = extract(
            html,
            include_comments=False,
            include_tables=True,
            include_images=True,
            include_links=True,
            output_format="html",
            favor_precision=False,
        )
        if content:
            content = self._clean_html(content)
        else:
            logger.debug("trafilatura 未提取到正文，尝试选择器提取")
            content = extract_main_text(html)

        if not content:
            return FullTextResult(success=False, error="无法从页面内容中提取正文")

        return FullTextResult(success=True, content=content, word_count=len(content))

    def _clean_html(self, html: str) -> str:
        """清理 HTML 内容."""
        html = re.sub(r"\n\s*\n", "\n\n", html)
        html = re.sub(r"<(\w+)>\s*</\1>", "", html)
        return html.strip()


_extractor: FullTextExtractor | None = None


def get_extractor() -> FullTextExtractor:
    """获取全文提取器（懒加载）."""
    global _extractor
    if _extractor is None:
        _extractor = FullTextExtractor()
    return _extractor


def shutdown_extractor() -> None:
    """释放全文提取器."""
    global _extractor
    if _extractor is not None:
        _extractor.close()
        _extractor = None
