# db/enums.py
import enum

class PageType(enum.StrEnum):
    HOMEPAGE = "HOMEPAGE"
    CATEGORY = "CATEGORY"
    MARKETS = "MARKETS"
    STOCK = "STOCK"
    STATIC = "STATIC"
    CUSTOM = "CUSTOM"

class ZoneType(enum.StrEnum):
    HERO_FEATURED = "HERO_FEATURED"
    HERO_SECONDARY = "HERO_SECONDARY"
    ARTICLE_GRID = "ARTICLE_GRID"
    ARTICLE_LIST = "ARTICLE_LIST"
    TRENDING_SIDEBAR = "TRENDING_SIDEBAR"
    BREAKING_BANNER = "BREAKING_BANNER"
    MARKET_TICKER = "MARKET_TICKER"
    MARKET_MOVERS = "MARKET_MOVERS"
    VIDEO_CAROUSEL = "VIDEO_CAROUSEL"
    CATEGORY_NAV = "CATEGORY_NAV"
    CUSTOM_HTML = "CUSTOM_HTML"
    STOCK_CHART = "STOCK_CHART"
    STOCK_NEWS = "STOCK_NEWS"
    CUSTOM = "CUSTOM"

# Zones that receive newly published articles.
ARTICLE_ZONE_TYPES = frozenset({
    ZoneType.HERO_FEATURED,
    ZoneType.HERO_SECONDARY,
    ZoneType.ARTICLE_GRID,
    ZoneType.ARTICLE_LIST,
    ZoneType.TRENDING_SIDEBAR,
})

class ContentType(enum.StrEnum):
    ARTICLE = "ARTICLE"
    VIDEO = "VIDEO"
    CUSTOM = "CUSTOM"

class ContentSource(enum.StrEnum):
    ARTICLES = "articles"
    VIDEOS = "videos"

class SortField(enum.StrEnum):
    PUBLISHED_AT = "publishedAt"
    CREATED_AT = "createdAt"
    TITLE = "title"

class SortDirection(enum.StrEnum):
    ASC = "asc"
    DESC = "desc"

class MaxAge(enum.StrEnum):
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

class PlacementOrigin(enum.StrEnum):
    PINNED = "pinned"
    MANUAL = "manual"
    AUTO = "auto"
