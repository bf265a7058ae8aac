"""FeedSync - RSS 订阅抓取与同步服务."""

__version__ = "0.1.0"
