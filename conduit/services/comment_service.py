"""
Comment service: comments on articles.

Any authenticated user may comment on any article; only the comment's
author may delete it.  A comment addressed through the slug of a
different article is treated as missing.
"""
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.errors import ErrorKind, ServiceError
from conduit.models import Article, Comment, User, utcnow
from conduit.projections import comment_to_dict
from conduit.queries import fetch_comments

# Primary keys are 32-bit INTEGER columns; larger ids cannot name a row.
_MAX_KEY = 2**31 - 1


async def _article_id_for(db: AsyncSession, slug: str) -> int:
    article_id = (await db.execute(select(Article.id).where(Article.slug == slug))).scalar_one_or_none()
    if article_id is None:
        raise ServiceError(ErrorKind.ARTICLE_NOT_FOUND)
    return article_id


async def get_comments(db: AsyncSession, slug: str, viewer_id: int | None = None) -> list[dict]:
    """Return the article's comments, newest first."""
    article_id = await _article_id_for(db, slug)
    return await fetch_comments(db, article_id, viewer_id)


async def add_comment(db: AsyncSession, viewer_id: int, slug: str, body: str) -> dict:
    article_id = await _article_id_for(db, slug)
    author = await db.get(User, viewer_id)
    if author is None:
        raise ServiceError(ErrorKind.USER_NOT_FOUND)

    now = utcnow()
    comment = Comment(
        body=body,
        article_id=article_id,
        author_id=viewer_id,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    await db.flush()

    # Users never follow themselves.
    return comment_to_dict(comment, author, following=False)


async def delete_comment(db: AsyncSession, viewer_id: int, slug: str, comment_id: int) -> None:
    if comment_id > _MAX_KEY:
        raise ServiceError(ErrorKind.COMMENT_NOT_FOUND)
    q = (
        select(Comment)
        .join(Article, Article.id == Comment.article_id)
        .where(Comment.id == comment_id, Article.slug == slug)
    )
    comment = (await db.execute(q)).scalar_one_or_none()
    if comment is None:
        raise ServiceError(ErrorKind.COMMENT_NOT_FOUND)
    if comment.author_id != viewer_id:
        raise ServiceError(ErrorKind.COMMENT_NOT_AUTHORIZED)
    await db.execute(delete(Comment).where(Comment.id == comment_id))
