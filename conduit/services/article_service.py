"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Reads go through ``conduit.queries``: every projection is computed for
  the requesting viewer in a fixed number of statements (see that
  module).  Nothing viewer-specific is cached.
- ``slugify`` is a pure function; uniqueness is checked separately
  against the database, and a colliding slug rejects the write with
  ARTICLE_ALREADY_EXISTS instead of being disambiguated.
- Tags are upserted with a conditional insert so concurrent writers that
  share tag names never conflict, then linked in the same transaction as
  the article row.
- Authorization order on writes: existence first (404), then authorship
  (403).
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging
import re

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import TAGS_CHANGED
from conduit.errors import ErrorKind, ServiceError
from conduit.models import Article, Tag, article_tags, favorites, utcnow
from conduit.queries import (
    article_page,
    authored_by,
    favorited_by,
    fetch_article,
    followed_by,
    insert_ignore,
    tagged_with,
)
from conduit.schemas import ArticleFilters, NewArticle, UpdateArticle

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_SEPARATOR_RE = re.compile(r"[\s-]+")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower())
    return _SLUG_SEPARATOR_RE.sub("-", text).strip("-")


def _clean_tags(names: list[str]) -> list[str]:
    """Drop blank and duplicate tag names, keeping first-seen order."""
    seen: dict[str, None] = {}
    for name in names:
        name = name.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


def _slug_for(title: str) -> str:
    slug = slugify(title)
    if not slug:
        raise ServiceError(
            ErrorKind.VALIDATION_FAILED,
            ["Title must contain at least one letter or digit"],
        )
    return slug


async def _slug_taken(db: AsyncSession, slug: str, exclude_id: int | None = None) -> bool:
    q = select(Article.id).where(Article.slug == slug)
    if exclude_id is not None:
        q = q.where(Article.id != exclude_id)
    return (await db.execute(q)).first() is not None


async def _flush_article(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError:
        # The only unique column an article write can hit is the slug.
        await db.rollback()
        raise ServiceError(ErrorKind.ARTICLE_ALREADY_EXISTS) from None


async def _set_tags(db: AsyncSession, article_id: int, names: list[str]) -> None:
    """
    Replace the article's tag links with *names*, creating missing Tag rows
    via a conditional insert.
    """
    await db.execute(delete(article_tags).where(article_tags.c.article_id == article_id))
    names = _clean_tags(names)
    if not names:
        return
    await insert_ignore(db, Tag.__table__, [{"name": n} for n in names])
    tag_ids = (await db.execute(select(Tag.id).where(Tag.name.in_(names)))).scalars().all()
    await insert_ignore(
        db, article_tags, [{"article_id": article_id, "tag_id": tag_id} for tag_id in tag_ids]
    )
    # The cached list is dropped once the transaction commits.
    db.info[TAGS_CHANGED] = True


async def _get_owned_article(db: AsyncSession, slug: str, viewer_id: int) -> Article:
    result = await db.execute(select(Article).where(Article.slug == slug))
    article = result.scalar_one_or_none()
    if article is None:
        raise ServiceError(ErrorKind.ARTICLE_NOT_FOUND)
    if article.author_id != viewer_id:
        raise ServiceError(ErrorKind.ARTICLE_NOT_AUTHORIZED)
    return article


async def _article_id_for(db: AsyncSession, slug: str) -> int:
    article_id = (await db.execute(select(Article.id).where(Article.slug == slug))).scalar_one_or_none()
    if article_id is None:
        raise ServiceError(ErrorKind.ARTICLE_NOT_FOUND)
    return article_id


async def _project(db: AsyncSession, article_id: int, viewer_id: int | None) -> dict:
    article = await fetch_article(db, viewer_id, Article.id == article_id)
    if article is None:
        raise ServiceError(ErrorKind.ARTICLE_NOT_FOUND)
    return article


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_articles(
    db: AsyncSession,
    filters: ArticleFilters,
    viewer_id: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> dict:
    """
    Return ``{"articles": [...], "articlesCount": N}`` for articles matching
    every supplied filter, newest first.
    """
    conditions = []
    if filters.tag:
        conditions.append(tagged_with(filters.tag))
    if filters.author:
        conditions.append(authored_by(filters.author))
    if filters.favorited:
        conditions.append(favorited_by(filters.favorited))

    articles, total = await article_page(db, conditions, viewer_id, limit, offset)
    return {"articles": articles, "articlesCount": total}


async def feed_articles(
    db: AsyncSession,
    viewer_id: int | None,
    limit: int = 20,
    offset: int = 0,
) -> dict:
    """Articles written by authors the viewer follows."""
    if viewer_id is None:
        raise ServiceError(ErrorKind.UNAUTHORIZED)
    articles, total = await article_page(db, [followed_by(viewer_id)], viewer_id, limit, offset)
    return {"articles": articles, "articlesCount": total}


async def get_article(db: AsyncSession, slug: str, viewer_id: int | None = None) -> dict:
    article = await fetch_article(db, viewer_id, Article.slug == slug)
    if article is None:
        raise ServiceError(ErrorKind.ARTICLE_NOT_FOUND)
    return article


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, viewer_id: int, data: NewArticle) -> dict:
    slug = _slug_for(data.title)
    if await _slug_taken(db, slug):
        raise ServiceError(ErrorKind.ARTICLE_ALREADY_EXISTS)

    now = utcnow()
    article = Article(
        slug=slug,
        title=data.title,
        description=data.description,
        body=data.body,
        author_id=viewer_id,
        created_at=now,
        updated_at=now,
    )
    db.add(article)
    await _flush_article(db)

    if data.tag_list:
        await _set_tags(db, article.id, data.tag_list)

    logger.info("Article created id=%d slug=%r author_id=%d", article.id, slug, viewer_id)
    return await _project(db, article.id, viewer_id)


async def update_article(db: AsyncSession, viewer_id: int, slug: str, data: UpdateArticle) -> dict:
    """
    Partially update an article owned by the viewer.

    Only fields explicitly set in the request payload are modified
    (``model_dump(exclude_unset=True)``); a new title regenerates the slug.
    """
    article = await _get_owned_article(db, slug, viewer_id)

    changes = data.model_dump(exclude_unset=True)
    tag_list: list[str] | None = changes.pop("tag_list", None)

    if changes.get("title") is not None:
        new_slug = _slug_for(changes["title"])
        if new_slug != article.slug and await _slug_taken(db, new_slug, exclude_id=article.id):
            raise ServiceError(ErrorKind.ARTICLE_ALREADY_EXISTS)
        article.slug = new_slug

    for field, value in changes.items():
        if value is not None:
            setattr(article, field, value)
    article.updated_at = utcnow()
    await _flush_article(db)

    if tag_list is not None:
        await _set_tags(db, article.id, tag_list)

    return await _project(db, article.id, viewer_id)


async def delete_article(db: AsyncSession, viewer_id: int, slug: str) -> None:
    """Delete the viewer's article; tag links, favorites and comments cascade."""
    article = await _get_owned_article(db, slug, viewer_id)
    article_id = article.id
    await db.execute(delete(Article).where(Article.id == article_id))
    logger.info("Article deleted id=%d slug=%r", article_id, slug)


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

async def favorite_article(db: AsyncSession, viewer_id: int, slug: str) -> dict:
    article_id = await _article_id_for(db, slug)
    await insert_ignore(db, favorites, [{"user_id": viewer_id, "article_id": article_id}])
    return await _project(db, article_id, viewer_id)


async def unfavorite_article(db: AsyncSession, viewer_id: int, slug: str) -> dict:
    article_id = await _article_id_for(db, slug)
    await db.execute(
        delete(favorites).where(
            favorites.c.user_id == viewer_id, favorites.c.article_id == article_id
        )
    )
    return await _project(db, article_id, viewer_id)
