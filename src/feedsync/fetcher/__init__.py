"""抓取-解析流水线."""

from feedsync.fetcher.base import Fetcher, ParsedFeed, Parser
from feedsync.fetcher.extractor import (
    FullTextExtractor,
    FullTextResult,
    get_extractor,
)
from feedsync.fetcher.http_fetcher import HttpFetcher
from feedsync.fetcher.parser import FeedParser, normalize_entry
from feedsync.fetcher.pipeline import FeedStream, FetchParsePipeline

__all__ = [
    "FeedParser",
    "FeedStream",
    "FetchParsePipeline",
    "Fetcher",
    "FullTextExtractor",
    "FullTextResult",
    "HttpFetcher",
    "ParsedFeed",
    "Parser",
    "get_extractor",
    "normalize_entry",
]
