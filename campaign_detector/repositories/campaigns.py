"""Campaign persistence and trigram similarity search."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from campaign_detector.core.config import get_settings
from campaign_detector.core.errors import InvalidInputError, StorageError
from campaign_detector.core.logging import LogEvent, get_logger
from campaign_detector.db import get_engine, get_session
from campaign_detector.db.models import SEARCHABLE_COLUMNS, SORTABLE_COLUMNS, Campaign
from campaign_detector.repositories.base import BaseRepository
from campaign_detector.services import trigram

logger = get_logger(__name__)

# pg_trgm backed search function; installed by ``install_search_function``
SEARCH_FUNCTION_DDL: Sequence[str] = (
    "CREATE EXTENSION IF NOT EXISTS pg_trgm",
    """
    CREATE OR REPLACE FUNCTION search_campaigns(q text, k integer DEFAULT 5)
    RETURNS TABLE (
        id integer,
        company_name varchar,
        campaign varchar,
        channel varchar,
        sent_at timestamptz,
        body text,
        occurrences integer,
        image_urls json,
        similarity real
    )
    LANGUAGE sql STABLE AS $$
        SELECT c.id, c.company_name, c.campaign, c.channel, c.sent_at,
               c.body, c.occurrences, c.image_urls,
               similarity(c.body, q) AS similarity
        FROM campaigns c
        WHERE similarity(c.body, q) > 0
        ORDER BY similarity(c.body, q) DESC, c.id
        LIMIT k
    $$
    """,
)


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def install_search_function() -> None:
    """Create the ``search_campaigns`` database function (PostgreSQL only)."""
    if not get_settings().is_postgres:
        return
    engine = get_engine()
    async with engine.begin() as conn:
        for statement in SEARCH_FUNCTION_DDL:
            await conn.execute(text(statement))
    logger.info("Installed search_campaigns function")


class CampaignRepository(BaseRepository[Campaign, int]):
    """CRUD, listing and similarity search over the ``campaigns`` table."""

    async def create(self, entity: Campaign) -> Campaign:
        try:
            async with get_session() as session:
                session.add(entity)
                await session.flush()
                await session.refresh(entity)
        except SQLAlchemyError as exc:
            logger.error("Campaign insert failed", error=str(exc))
            raise StorageError(str(exc), operation="insert") from exc
        return entity

    async def get_by_id(self, entity_id: int) -> Optional[Campaign]:
        async with get_session() as session:
            return await session.get(Campaign, entity_id)

    async def update(self, entity_id: int, updates: Dict[str, Any]) -> Optional[Campaign]:
        async with get_session() as session:
            campaign = await session.get(Campaign, entity_id)
            if campaign is None:
                return None
            for key, value in updates.items():
                if hasattr(campaign, key):
                    setattr(campaign, key, value)
            session.add(campaign)
            await session.flush()
            await session.refresh(campaign)
            return campaign

    async def increment_occurrences(self, entity_id: int) -> Optional[int]:
        """Add one to the campaign's occurrence counter; None if missing."""
        try:
            async with get_session() as session:
                campaign = await session.get(Campaign, entity_id)
                if campaign is None:
                    return None
                campaign.occurrences = (campaign.occurrences or 0) + 1
                session.add(campaign)
                return campaign.occurrences
        except SQLAlchemyError as exc:
            logger.error("Occurrence update failed", campaign_id=entity_id, error=str(exc))
            raise StorageError(str(exc), operation="update") from exc

    async def list_all(self, limit: Optional[int] = None, offset: int = 0) -> List[Campaign]:
        campaigns, _ = await self.list_campaigns(limit=limit, offset=offset)
        return campaigns

    async def count(self) -> int:
        async with get_session() as session:
            result = await session.exec(select(func.count()).select_from(Campaign))
            return int(result.one())

    async def list_campaigns(
        self,
        search: str = "",
        sort_by: str = "sent_at",
        sort_order: SortOrder = SortOrder.DESC,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> Tuple[List[Campaign], int]:
        """
        Filtered, sorted page of campaigns plus the total number of matches.

        ``search`` is a case-insensitive substring matched against company,
        campaign name, channel and body.
        """
        if sort_by not in SORTABLE_COLUMNS:
            raise InvalidInputError(
                f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORTABLE_COLUMNS)}",
                field="sortBy",
                value=sort_by,
            )

        conditions = []
        search = (search or "").strip()
        if search:
            pattern = f"%{_escape_like(search)}%"
            conditions.append(
                or_(*(getattr(Campaign, column).ilike(pattern, escape="\\") for column in SEARCHABLE_COLUMNS))
            )

        sort_column = getattr(Campaign, sort_by)
        ordering = sort_column.asc() if SortOrder(sort_order) is SortOrder.ASC else sort_column.desc()

        query = select(Campaign).where(*conditions).order_by(ordering, Campaign.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        count_query = select(func.count()).select_from(Campaign).where(*conditions)

        async with get_session() as session:
            campaigns = list((await session.exec(query)).all())
            total = int((await session.exec(count_query)).one())
        return campaigns, total

    async def search_similar(self, query: str, k: int = 5) -> List[Tuple[Campaign, float]]:
        """Top ``k`` campaigns whose body is trigram-similar to ``query``."""
        if not query or not query.strip():
            return []

        try:
            if get_settings().is_postgres:
                matches = await self._search_postgres(query, k)
            else:
                matches = await self._search_in_process(query, k)
        except SQLAlchemyError as exc:
            logger.error(LogEvent.SEARCH_FAILED, error=str(exc))
            raise StorageError("Failed to search for similar campaigns", operation="search") from exc

        logger.info(
            LogEvent.SEARCH_COMPLETED,
            query_length=len(query),
            k=k,
            matches=len(matches),
            top_similarity=matches[0][1] if matches else None,
        )
        return matches

    async def _search_postgres(self, query: str, k: int) -> List[Tuple[Campaign, float]]:
        statement = text("SELECT * FROM search_campaigns(:q, :k)")
        async with get_session() as session:
            result = await session.execute(statement, {"q": query, "k": k})
            rows = result.mappings().all()

        matches = []
        for row in rows:
            values = dict(row)
            score = float(values.pop("similarity") or 0.0)
            matches.append((Campaign(**values), score))
        return matches

    async def _search_in_process(self, query: str, k: int) -> List[Tuple[Campaign, float]]:
        async with get_session() as session:
            campaigns = (await session.exec(select(Campaign))).all()

        scored = []
        for campaign in campaigns:
            score = trigram.similarity(campaign.body or "", query)
            if score > 0:
                scored.append((campaign, score))
        scored.sort(key=lambda item: (-item[1], item[0].id))
        return scored[:k]
