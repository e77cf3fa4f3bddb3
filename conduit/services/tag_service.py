"""
Tag service: the global tag list.

Tags are shared and never deleted through the API, so the list is a
good fit for the cache-aside pattern; article writes that link tags
invalidate the cached entry.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.cache import TAGS_KEY, cache
from conduit.config import settings
from conduit.models import Tag


async def get_tags(db: AsyncSession) -> list[str]:
    cached = await cache.get(TAGS_KEY)
    if cached is not None:
        return cached

    result = await db.execute(select(Tag.name).order_by(Tag.name))
    tags = list(result.scalars().all())
    await cache.set(TAGS_KEY, tags, ttl=settings.CACHE_TTL_TAGS)
    return tags
