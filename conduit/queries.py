"""
Read-side query contracts shared by the services.

Design notes
------------
- Per-viewer fields are computed in SQL.  A page of articles is one
  statement: the author is joined, ``favoritesCount`` comes from a
  grouped subquery over ``favorites``, and the viewer's own favorite and
  follow rows are LEFT JOINed (both at most one row thanks to the
  composite primary keys), so joins never multiply article rows.
- The total for pagination is ``count(*) OVER ()`` on that same
  statement, so page and total always agree.  A separate COUNT runs only
  when the page comes back empty past the first row.
- Tags for a page are loaded with one extra statement keyed by article
  id; the number of statements never depends on the page size.
- ``insert_ignore`` is the conditional insert used for follows,
  favorites and tag upserts (``ON CONFLICT DO NOTHING``).
"""
from collections import defaultdict

from sqlalchemy import Select, and_, exists, false, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from conduit.models import Article, Comment, Tag, User, article_tags, favorites, follows
from conduit.projections import article_to_dict, comment_to_dict, profile_to_dict

# ---------------------------------------------------------------------------
# Conditional insert
# ---------------------------------------------------------------------------

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def insert_ignore(db: AsyncSession, table, rows: list[dict]) -> None:
    """INSERT *rows* into *table*, silently skipping rows that conflict."""
    if not rows:
        return
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERT_BY_DIALECT[dialect]
    except KeyError:
        raise RuntimeError(f"conditional insert is not supported on {dialect!r}") from None
    await db.execute(insert(table).values(rows).on_conflict_do_nothing())


# ---------------------------------------------------------------------------
# Filter predicates
# ---------------------------------------------------------------------------

def tagged_with(tag: str):
    return Article.id.in_(
        select(article_tags.c.article_id)
        .join(Tag, Tag.id == article_tags.c.tag_id)
        .where(Tag.name == tag)
    )


def authored_by(username: str):
    # Article statements always join the author as ``User``.
    return User.username == username


def favorited_by(username: str):
    favoriter = aliased(User, name="favoriter")
    return Article.id.in_(
        select(favorites.c.article_id)
        .join(favoriter, favoriter.id == favorites.c.user_id)
        .where(favoriter.username == username)
    )


def followed_by(viewer_id: int):
    return Article.author_id.in_(
        select(follows.c.followee_id).where(follows.c.follower_id == viewer_id)
    )


def following_flag(viewer_id: int | None, user_id_column):
    """``following`` column for a single-row or correlated projection."""
    if viewer_id is None:
        return false().label("following")
    return (
        exists()
        .where(follows.c.follower_id == viewer_id, follows.c.followee_id == user_id_column)
        .label("following")
    )


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------

def _article_statement(viewer_id: int | None) -> Select:
    fav_counts = (
        select(favorites.c.article_id, func.count().label("favorites_count"))
        .group_by(favorites.c.article_id)
        .subquery("fav_counts")
    )
    stmt = (
        select(
            Article,
            User,
            func.coalesce(fav_counts.c.favorites_count, 0).label("favorites_count"),
        )
        .join(User, Article.author_id == User.id)
        .outerjoin(fav_counts, fav_counts.c.article_id == Article.id)
    )
    if viewer_id is None:
        return stmt.add_columns(false().label("favorited"), false().label("following"))

    viewer_fav = favorites.alias("viewer_fav")
    viewer_follow = follows.alias("viewer_follow")
    return (
        stmt.add_columns(
            viewer_fav.c.user_id.is_not(None).label("favorited"),
            viewer_follow.c.follower_id.is_not(None).label("following"),
        )
        .outerjoin(
            viewer_fav,
            and_(viewer_fav.c.article_id == Article.id, viewer_fav.c.user_id == viewer_id),
        )
        .outerjoin(
            viewer_follow,
            and_(viewer_follow.c.followee_id == User.id, viewer_follow.c.follower_id == viewer_id),
        )
    )


async def _load_tags(db: AsyncSession, article_ids: list[int]) -> dict[int, list[str]]:
    if not article_ids:
        return {}
    q = (
        select(article_tags.c.article_id, Tag.name)
        .join(Tag, Tag.id == article_tags.c.tag_id)
        .where(article_tags.c.article_id.in_(article_ids))
        .order_by(Tag.name)
    )
    tags: dict[int, list[str]] = defaultdict(list)
    for article_id, name in (await db.execute(q)).all():
        tags[article_id].append(name)
    return tags


async def count_articles(db: AsyncSession, conditions: list) -> int:
    q = (
        select(func.count())
        .select_from(Article)
        .join(User, Article.author_id == User.id)
        .where(*conditions)
    )
    return (await db.execute(q)).scalar_one()


async def article_page(
    db: AsyncSession,
    conditions: list,
    viewer_id: int | None,
    limit: int,
    offset: int,
) -> tuple[list[dict], int]:
    """
    Return one page of projected articles matching every predicate in
    *conditions*, newest first, together with the total match count.
    """
    q = (
        _article_statement(viewer_id)
        .add_columns(func.count().over().label("total_count"))
        .where(*conditions)
        .order_by(Article.created_at.desc(), Article.id.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await db.execute(q)).all()

    if rows:
        total = rows[0].total_count
    elif offset == 0:
        total = 0
    else:
        total = await count_articles(db, conditions)

    tags = await _load_tags(db, [row.Article.id for row in rows])
    items = [
        article_to_dict(
            row.Article,
            row.User,
            tags.get(row.Article.id, []),
            favorited=row.favorited,
            favorites_count=row.favorites_count,
            following=row.following,
        )
        for row in rows
    ]
    return items, total


async def fetch_article(db: AsyncSession, viewer_id: int | None, *conditions) -> dict | None:
    """Project the single article matching *conditions*, or None."""
    items, _ = await article_page(db, list(conditions), viewer_id, limit=1, offset=0)
    return items[0] if items else None


# ---------------------------------------------------------------------------
# Profiles and comments
# ---------------------------------------------------------------------------

async def fetch_profile(db: AsyncSession, viewer_id: int | None, *conditions) -> dict | None:
    q = select(User, following_flag(viewer_id, User.id)).where(*conditions)
    row = (await db.execute(q)).first()
    if row is None:
        return None
    return profile_to_dict(row.User, row.following)


async def fetch_comments(db: AsyncSession, article_id: int, viewer_id: int | None) -> list[dict]:
    q = (
        select(Comment, User, following_flag(viewer_id, User.id))
        .join(User, Comment.author_id == User.id)
        .where(Comment.article_id == article_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    rows = (await db.execute(q)).all()
    return [comment_to_dict(row.Comment, row.User, row.following) for row in rows]
