"""Article Stock Ledger - article master data and stock movements.

- Threshold validation (min <= reorder point <= max)
- Atomic stock adjustment with negative stock guard
- Derived classification: critical / warning / good
- Movement journal for every adjustment
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import replace
from typing import Optional

from wms_core.engine.locking import LEDGER_KEY, LockManager
from wms_core.errors import ArticleNotFound, DuplicateArticleId, InvalidThresholds, NegativeStock
from wms_core.models.warehouse import Article, ArticleType, StockLevel, StockMovement

logger = logging.getLogger(__name__)

WARNING_FACTOR = 1.5

# in-memory movement window
MAX_MOVEMENTS = 10_000


def classify(article: Article) -> StockLevel:
    """Stock level of an article. Pure; depends only on the article's numbers."""
    if article.current_stock <= article.reorder_point:
        return StockLevel.CRITICAL
    if article.current_stock <= article.reorder_point * WARNING_FACTOR:
        return StockLevel.WARNING
    return StockLevel.GOOD


def stock_percentage(article: Article) -> float:
    """Current stock as a percentage of max stock, for fill bars."""
    if article.max_stock <= 0:
        return 0.0
    return round(article.current_stock / article.max_stock * 100, 1)


def validate_thresholds(article: Article) -> None:
    if not 0 <= article.min_stock <= article.reorder_point <= article.max_stock:
        raise InvalidThresholds(
            f"{article.article_id}: expected 0 <= min ({article.min_stock}) "
            f"<= reorder point ({article.reorder_point}) <= max ({article.max_stock})"
        )
    if article.current_stock < 0:
        raise NegativeStock(
            f"{article.article_id}: opening stock cannot be negative ({article.current_stock})"
        )


class ArticleStockLedger:
    """Owns article records and the arithmetic of stock movement."""

    def __init__(
        self, locks: Optional[LockManager] = None, max_movements: int = MAX_MOVEMENTS
    ) -> None:
        self.locks = locks or LockManager()
        self._articles: dict[str, Article] = {}
        self._movements: deque[StockMovement] = deque(maxlen=max_movements)

    def _require(self, article_id: str) -> Article:
        article = self._articles.get(article_id)
        if article is None:
            raise ArticleNotFound(f"Article not found: {article_id}")
        return article

    def register_article(self, article: Article) -> Article:
        with self.locks.writing(LEDGER_KEY):
            if article.article_id in self._articles:
                raise DuplicateArticleId(f"Article already exists: {article.article_id}")
            stored = replace(article, type=ArticleType(article.type))
            validate_thresholds(stored)
            self._articles[stored.article_id] = stored
            logger.info(
                "Article registered: %s (%s) stock=%s",
                stored.article_id, stored.type.value, stored.current_stock,
            )
            return replace(stored)

    def adjust_stock(
        self, article_id: str, delta: int, reference: Optional[str] = None
    ) -> StockLevel:
        """Applies delta to the current stock and returns the new classification.

        Raises NegativeStock, leaving the stock untouched, if the result would
        drop below zero.
        """
        with self.locks.writing(LEDGER_KEY):
            article = self._require(article_id)
            before = article.current_stock
            after = before + delta
            if after < 0:
                logger.warning(
                    "Stock adjustment rejected: %s current=%s delta=%s", article_id, before, delta
                )
                raise NegativeStock(
                    f"Insufficient stock: {article_id} current={before}, requested={-delta}"
                )

            article.current_stock = after
            level = classify(article)
            self._movements.append(
                StockMovement(
                    movement_id=str(uuid.uuid4()),
                    article_id=article_id,
                    stock_before=before,
                    stock_after=after,
                    delta=delta,
                    level=level,
                    reference=reference,
                )
            )
            logger.info("Stock adjusted: %s %s -> %s (%s)", article_id, before, after, level.value)
            return level

    def classify(self, article_id: str) -> StockLevel:
        return classify(self.get_article(article_id))

    def get_article(self, article_id: str) -> Article:
        with self.locks.reading(LEDGER_KEY):
            return replace(self._require(article_id))

    def list_articles(self) -> list[Article]:
        """Articles in registration order."""
        with self.locks.reading(LEDGER_KEY):
            return [replace(a) for a in self._articles.values()]

    def low_stock_articles(self) -> list[Article]:
        """Articles at or below their reorder point."""
        return [a for a in self.list_articles() if classify(a) == StockLevel.CRITICAL]

    def movements(self, article_id: Optional[str] = None) -> list[StockMovement]:
        with self.locks.reading(LEDGER_KEY):
            entries = list(self._movements)
        if article_id:
            entries = [m for m in entries if m.article_id == article_id]
        return entries
