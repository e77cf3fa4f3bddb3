"""
Response shapes for users, profiles, articles and comments.

Every projection is a plain dict using the wire field names.  Viewer
relative flags (``following``, ``favorited``) and ``favoritesCount`` are
passed in by the caller, who computes them in SQL for the current viewer;
nothing here touches the database.
"""
from datetime import datetime, timezone

from conduit.models import Article, Comment, User


def isoformat(value: datetime | None) -> str | None:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if value is None:
        return None
    if value.tzinfo is None:
        # SQLite hands back naive datetimes; stored values are always UTC.
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def user_to_dict(user: User, token: str) -> dict:
    return {
        "email": user.email,
        "token": token,
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
    }


def profile_to_dict(user: User, following: bool) -> dict:
    return {
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
        "following": bool(following),
    }


def article_to_dict(
    article: Article,
    author: User,
    tags: list[str],
    *,
    favorited: bool,
    favorites_count: int,
    following: bool,
) -> dict:
    return {
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
        "body": article.body,
        "tagList": sorted(tags),
        "createdAt": isoformat(article.created_at),
        "updatedAt": isoformat(article.updated_at),
        "favorited": bool(favorited),
        "favoritesCount": int(favorites_count or 0),
        "author": profile_to_dict(author, following),
    }


def comment_to_dict(comment: Comment, author: User, following: bool) -> dict:
    return {
        "id": comment.id,
        "createdAt": isoformat(comment.created_at),
        "updatedAt": isoformat(comment.updated_at),
        "body": comment.body,
        "author": profile_to_dict(author, following),
    }
