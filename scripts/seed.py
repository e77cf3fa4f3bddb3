"""
Populate a development database with a Conduit-shaped dataset.

Drops and recreates every table, then inserts users, a follow graph,
tagged articles, favorites and comments.  Every account shares the
password printed at the end.

    python -m scripts.seed            # 50 users, 5000 articles
    python -m scripts.seed --small    # 10 users, 100 articles
"""
import argparse
import asyncio
import random
import time
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import Base, async_session, engine
from conduit.models import Article, Comment, Tag, User, article_tags, favorites, follows, utcnow
from conduit.security import hash_password
from conduit.services.article_service import slugify

SEED_PASSWORD = "password123"

TOPICS = [
    "python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
    "react", "typescript", "aws", "devops", "testing", "performance",
    "security", "microservices", "graphql", "rest-api",
]

ARTICLE_BATCH = 500


@dataclass
class Dataset:
    users: int
    articles: int
    max_comments: int
    max_follows: int = 5
    max_favorites: int = 3


FULL = Dataset(users=50, articles=5000, max_comments=5)
SMALL = Dataset(users=10, articles=100, max_comments=2)


async def _seed_users(db: AsyncSession, size: Dataset) -> list[int]:
    # bcrypt is slow on purpose; one hash is shared by every account.
    password_hash = hash_password(SEED_PASSWORD)
    now = utcnow()
    rows = [
        {
            "username": f"writer{i:03d}",
            "email": f"writer{i:03d}@conduit.dev",
            "password_hash": password_hash,
            "bio": f"Writer #{i}, mostly about {TOPICS[i % len(TOPICS)]}.",
            "created_at": now,
            "updated_at": now,
        }
        for i in range(size.users)
    ]
    result = await db.execute(insert(User).returning(User.id), rows)
    return list(result.scalars().all())


async def _seed_follows(db: AsyncSession, user_ids: list[int], size: Dataset) -> int:
    pairs = set()
    for follower in user_ids:
        k = random.randint(0, min(size.max_follows, len(user_ids) - 1))
        for followee in random.sample(user_ids, k):
            if followee != follower:
                pairs.add((follower, followee))
    if pairs:
        await db.execute(
            insert(follows), [{"follower_id": a, "followee_id": b} for a, b in pairs]
        )
    return len(pairs)


async def _seed_tags(db: AsyncSession) -> list[int]:
    result = await db.execute(insert(Tag).returning(Tag.id), [{"name": t} for t in TOPICS])
    return list(result.scalars().all())


async def _seed_article_batch(
    db: AsyncSession, start: int, stop: int, user_ids: list[int], tag_ids: list[int], size: Dataset,
) -> tuple[int, int]:
    now = utcnow()
    articles = []
    for i in range(start, stop):
        topic = random.choice(TOPICS)
        title = f"Notes on {topic} #{i}"
        created = now - timedelta(minutes=random.randint(0, 60 * 24 * 365))
        articles.append(Article(
            slug=slugify(title),
            title=title,
            description=f"Lessons learned running {topic} in production.",
            body=f"Part {i} of an ongoing series about {topic}.\n\n" * 10,
            author_id=random.choice(user_ids),
            created_at=created,
            updated_at=created,
        ))
    db.add_all(articles)
    await db.flush()

    links, likes, comments = [], [], []
    for article in articles:
        for tag_id in random.sample(tag_ids, random.randint(1, 4)):
            links.append({"article_id": article.id, "tag_id": tag_id})
        for fan in random.sample(user_ids, random.randint(0, min(size.max_favorites, len(user_ids)))):
            likes.append({"user_id": fan, "article_id": article.id})
        for n in range(random.randint(0, size.max_comments)):
            stamp = article.created_at + timedelta(minutes=n + 1)
            comments.append({
                "body": f"Comment {n + 1} on {article.slug}",
                "article_id": article.id,
                "author_id": random.choice(user_ids),
                "created_at": stamp,
                "updated_at": stamp,
            })

    await db.execute(insert(article_tags), links)
    if likes:
        await db.execute(insert(favorites), likes)
    if comments:
        await db.execute(insert(Comment), comments)
    return len(likes), len(comments)


async def seed(size: Dataset) -> None:
    started = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        user_ids = await _seed_users(db, size)
        follow_count = await _seed_follows(db, user_ids, size)
        tag_ids = await _seed_tags(db)
        print(f"users={len(user_ids)} follows={follow_count} tags={len(tag_ids)}")

        favorite_count = comment_count = 0
        for start in range(0, size.articles, ARTICLE_BATCH):
            stop = min(start + ARTICLE_BATCH, size.articles)
            likes, comments = await _seed_article_batch(db, start, stop, user_ids, tag_ids, size)
            favorite_count += likes
            comment_count += comments
            print(f"articles {start}..{stop - 1} inserted")

        await db.commit()

    await engine.dispose()
    print(
        f"done in {time.perf_counter() - started:.1f}s: "
        f"articles={size.articles} favorites={favorite_count} comments={comment_count}"
    )
    print(f"every account logs in with password {SEED_PASSWORD!r}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="10 users and 100 articles")
    args = parser.parse_args()
    asyncio.run(seed(SMALL if args.small else FULL))


if __name__ == "__main__":
    main()
